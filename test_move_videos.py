"""
Тесты для переноса видео в архивную папку
"""
import unittest
from unittest.mock import AsyncMock, Mock

from outsaver.exceptions import MoveError, NodeLookupError
from outsaver.models.remote_node import RemoteNode
from outsaver.use_cases import MoveVideosUseCase

CLIP_A = RemoteNode(handle='fileA', name='a.mp4')
CLIP_B = RemoteNode(handle='fileB', name='b.mp4')


class TestMoveVideosUseCase(unittest.IsolatedAsyncioTestCase):
    """Тесты для MoveVideosUseCase"""

    def setUp(self):
        self.storage = Mock()
        self.storage.resolve_nodes_by_name = AsyncMock(return_value=[CLIP_A, CLIP_B])
        self.storage.move_node = AsyncMock()
        self.use_case = MoveVideosUseCase(self.storage)

    async def test_move_found(self):
        """Тест: найденные узлы перемещаются, ненайденные перечисляются"""
        result = await self.use_case.execute(['b.mp4', 'a.mp4', 'c.mp4'], 'arch')

        self.assertEqual(result['moved'], ['a.mp4', 'b.mp4'])
        self.assertEqual(result['not_found'], ['c.mp4'])
        self.assertEqual(result['failed'], [])
        self.assertEqual(
            [call.args for call in self.storage.move_node.await_args_list],
            [('fileA', 'arch'), ('fileB', 'arch')]
        )

    async def test_duplicate_names_requested_once(self):
        await self.use_case.execute(['a.mp4', 'a.mp4', ''], 'arch')
        self.storage.resolve_nodes_by_name.assert_awaited_once_with(['a.mp4'])

    async def test_one_move_fails(self):
        """Тест: ошибка одного переноса не мешает остальным"""
        self.storage.move_node = AsyncMock(side_effect=[MoveError("отказано"), None])

        result = await self.use_case.execute(['a.mp4', 'b.mp4'], 'arch')

        self.assertEqual(result['moved'], ['b.mp4'])
        self.assertEqual(result['failed'], [('a.mp4', 'отказано')])

    async def test_lookup_fails(self):
        self.storage.resolve_nodes_by_name = AsyncMock(side_effect=NodeLookupError("нет связи"))

        result = await self.use_case.execute(['a.mp4', 'b.mp4'], 'arch')

        self.assertEqual(result['moved'], [])
        self.assertEqual(result['failed'], [('a.mp4', 'нет связи'), ('b.mp4', 'нет связи')])
        self.storage.move_node.assert_not_awaited()

    async def test_no_names(self):
        result = await self.use_case.execute([], 'arch')
        self.assertEqual(result, {'moved': [], 'not_found': [], 'failed': []})
        self.storage.resolve_nodes_by_name.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
