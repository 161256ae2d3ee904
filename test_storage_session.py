"""
Тесты для StorageSession
"""
import asyncio
import os
import shutil
import tempfile
import unittest
from unittest.mock import AsyncMock, Mock

import aiohttp

from outsaver.exceptions import (
    AuthError,
    LocalIoError,
    LogoutError,
    MoveError,
    NodeLookupError,
    NodeNotFoundError,
    NoSuchDestinationError,
    SessionStateError,
    TransferFailedError
)
from outsaver.models.remote_node import NodeKind, RemoteNode
from outsaver.storage import MegaApiError, ProgressThrottle, SessionState, StorageSession

ROOT = RemoteNode(handle='root', name='Cloud Drive', kind=NodeKind.ROOT)
DEST = RemoteNode(handle='dest', name='Clips', kind=NodeKind.FOLDER, parent_handle='root')
ARCHIVE = RemoteNode(handle='arch', name='Archive', kind=NodeKind.FOLDER, parent_handle='root')
CLIP_A = RemoteNode(handle='fileA', name='a.mp4', parent_handle='dest', size=10)
CLIP_B = RemoteNode(handle='fileB', name='b.mp4', parent_handle='dest', size=20)
CLIP_A_COPY = RemoteNode(handle='fileA2', name='a.mp4', parent_handle='arch', size=10)
NODES = [ROOT, DEST, ARCHIVE, CLIP_A, CLIP_B, CLIP_A_COPY]


def make_client(nodes=NODES):
    """Фейковый MegaApiClient"""
    client = Mock()
    client.login = AsyncMock()
    client.logout = AsyncMock()
    client.fetch_nodes = AsyncMock(return_value=list(nodes))
    client.upload = AsyncMock(return_value='newHandle')
    client.move = AsyncMock()
    return client


class StorageSessionTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.client = make_client()
        self.session = StorageSession(Mock(), client=self.client)
        await self.session.login('bot@example.com', 'secret')


class TestLogin(unittest.IsolatedAsyncioTestCase):
    """Тесты входа и выхода"""

    async def test_login(self):
        """Тест успешного входа"""
        client = make_client()
        session = StorageSession(Mock(), client=client)
        self.assertEqual(session.state, SessionState.UNAUTHENTICATED)

        await session.login('bot@example.com', 'secret')

        client.login.assert_awaited_once_with('bot@example.com', 'secret')
        self.assertEqual(session.state, SessionState.AUTHENTICATED)

    async def test_login_failure(self):
        """Тест: ошибка протокола или сети превращается в AuthError"""
        for error in [MegaApiError(-9), aiohttp.ClientConnectionError('нет сети')]:
            client = make_client()
            client.login.side_effect = error
            session = StorageSession(Mock(), client=client)

            with self.assertRaises(AuthError):
                await session.login('bot@example.com', 'wrong')
            self.assertEqual(session.state, SessionState.UNAUTHENTICATED)

    async def test_second_login(self):
        """Тест: повторный вход запрещён"""
        session = StorageSession(Mock(), client=make_client())
        await session.login('bot@example.com', 'secret')

        with self.assertRaises(SessionStateError):
            await session.login('bot@example.com', 'secret')

    async def test_operations_before_login(self):
        """Тест: операции с узлами без входа"""
        client = make_client()
        session = StorageSession(Mock(), client=client)

        with self.assertRaises(SessionStateError):
            await session.fetch_snapshot()
        with self.assertRaises(SessionStateError):
            await session.upload('/tmp/whatever', 'x.mp4', 'dest')
        with self.assertRaises(SessionStateError):
            await session.move_node('fileA', 'arch')
        client.fetch_nodes.assert_not_awaited()

    async def test_logout(self):
        """Тест выхода: после него операции недоступны"""
        client = make_client()
        session = StorageSession(Mock(), client=client)
        await session.login('bot@example.com', 'secret')

        await session.logout()

        client.logout.assert_awaited_once()
        self.assertEqual(session.state, SessionState.LOGGED_OUT)
        with self.assertRaises(SessionStateError):
            await session.fetch_snapshot()

    async def test_logout_failure(self):
        """Тест: ошибка выхода - LogoutError, но сессия всё равно закрыта"""
        client = make_client()
        client.logout.side_effect = MegaApiError(-15)
        session = StorageSession(Mock(), client=client)
        await session.login('bot@example.com', 'secret')

        with self.assertRaises(LogoutError):
            await session.logout()
        self.assertEqual(session.state, SessionState.LOGGED_OUT)


class TestResolve(StorageSessionTestCase):
    """Тесты поиска узлов"""

    async def test_resolve_by_handle(self):
        node = await self.session.resolve_node_by_handle('dest')
        self.assertEqual(node, DEST)

    async def test_resolve_by_handle_missing(self):
        with self.assertRaises(NodeNotFoundError) as context:
            await self.session.resolve_node_by_handle('nope')
        self.assertEqual(context.exception.handle, 'nope')

    async def test_resolve_by_names(self):
        """Тест: порядок как в списке MEGA, одноимённые узлы возвращаются все"""
        nodes = await self.session.resolve_nodes_by_name(['b.mp4', 'a.mp4', 'missing.mp4'])
        self.assertEqual(nodes, [CLIP_A, CLIP_B, CLIP_A_COPY])

    async def test_fresh_snapshot_every_time(self):
        """Тест: каждая операция заново запрашивает дерево"""
        await self.session.resolve_node_by_handle('dest')
        await self.session.resolve_nodes_by_name(['a.mp4'])
        self.assertEqual(self.client.fetch_nodes.await_count, 2)

    async def test_lookup_failure(self):
        self.client.fetch_nodes.side_effect = MegaApiError(-3)
        with self.assertRaises(NodeLookupError):
            await self.session.resolve_nodes_by_name(['a.mp4'])


class TestUpload(StorageSessionTestCase):
    """Тесты загрузки файла"""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.test_dir = tempfile.mkdtemp()
        self.local_path = os.path.join(self.test_dir, 'clip.mp4')
        with open(self.local_path, 'wb') as f:
            f.write(b'x' * 1000)

    async def asyncTearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    async def test_upload(self):
        """Тест успешной загрузки"""
        handle = await self.session.upload(self.local_path, 'alice - Valorant - 1.mp4', 'dest')

        self.assertEqual(handle, 'newHandle')
        args, kwargs = self.client.upload.call_args
        self.assertEqual(args[1:], (1000, 'alice - Valorant - 1.mp4', 'dest'))
        self.assertIsNone(kwargs['progress'])

    async def test_upload_progress(self):
        """Тест: колбэк прогресса получает общий размер файла"""
        reports = []

        async def fake_upload(reader, size, name, destination, progress=None):
            progress(500)
            progress(1000)
            return 'newHandle'

        self.client.upload.side_effect = fake_upload
        await self.session.upload(self.local_path, 'x.mp4', 'dest', progress=lambda done, total: reports.append((done, total)))

        # Второй вызов пришёл раньше чем через 100 мс и отброшен
        self.assertEqual(reports, [(500, 1000)])

    async def test_missing_local_file(self):
        with self.assertRaises(LocalIoError):
            await self.session.upload(os.path.join(self.test_dir, 'nope.mp4'), 'x.mp4', 'dest')
        self.client.upload.assert_not_awaited()

    async def test_missing_destination(self):
        with self.assertRaises(NoSuchDestinationError) as context:
            await self.session.upload(self.local_path, 'x.mp4', 'nope')
        self.assertEqual(context.exception.handle, 'nope')
        self.client.upload.assert_not_awaited()

    async def test_transfer_failure(self):
        """Тест: ошибка протокола или сети - TransferFailedError"""
        for error in [MegaApiError(-17), aiohttp.ClientConnectionError('обрыв')]:
            self.client.upload.side_effect = error
            with self.assertRaises(TransferFailedError):
                await self.session.upload(self.local_path, 'x.mp4', 'dest')

    async def test_read_failure(self):
        """Тест: ошибка чтения во время загрузки - LocalIoError"""
        self.client.upload.side_effect = OSError('диск отвалился')
        with self.assertRaises(LocalIoError):
            await self.session.upload(self.local_path, 'x.mp4', 'dest')

    async def test_snapshot_failure(self):
        self.client.fetch_nodes.side_effect = aiohttp.ClientConnectionError('обрыв')
        with self.assertRaises(TransferFailedError):
            await self.session.upload(self.local_path, 'x.mp4', 'dest')


class TestMove(StorageSessionTestCase):
    """Тесты перемещения узлов"""

    async def test_move(self):
        await self.session.move_node('fileA', 'arch')
        self.client.move.assert_awaited_once_with('fileA', 'arch')

    async def test_move_missing_source(self):
        with self.assertRaises(MoveError):
            await self.session.move_node('nope', 'arch')
        self.client.move.assert_not_awaited()

    async def test_move_missing_destination(self):
        with self.assertRaises(MoveError):
            await self.session.move_node('fileA', 'nope')
        self.client.move.assert_not_awaited()

    async def test_move_rejected(self):
        self.client.move.side_effect = MegaApiError(-11)
        with self.assertRaises(MoveError):
            await self.session.move_node('fileA', 'arch')


class TestSerialization(StorageSessionTestCase):
    """Тесты очерёдности обращений к MEGA из нескольких пакетов"""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.test_dir = tempfile.mkdtemp()
        self.local_path = os.path.join(self.test_dir, 'clip.mp4')
        with open(self.local_path, 'wb') as f:
            f.write(b'x' * 100)

        self.events = []

        async def slow_upload(reader, size, name, destination, progress=None):
            self.events.append(('enter', name))
            await asyncio.sleep(0.01)
            self.events.append(('exit', name))
            return f"handle-{name}"

        async def slow_move(handle, target):
            self.events.append(('enter', handle))
            await asyncio.sleep(0.01)
            self.events.append(('exit', handle))

        self.client.upload.side_effect = slow_upload
        self.client.move.side_effect = slow_move

    async def asyncTearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    async def test_concurrent_operations_do_not_interleave(self):
        """Тест: два пакета и /move одновременно - вызовы клиента идут строго по одному"""
        handles = await asyncio.gather(
            self.session.upload(self.local_path, 'one.mp4', 'dest'),
            self.session.upload(self.local_path, 'two.mp4', 'dest'),
            self.session.move_node('fileA', 'arch')
        )

        self.assertEqual(handles[:2], ['handle-one.mp4', 'handle-two.mp4'])
        self.assertEqual(len(self.events), 6)
        for position in range(0, len(self.events), 2):
            enter, exit_ = self.events[position], self.events[position + 1]
            self.assertEqual(enter[0], 'enter')
            self.assertEqual(exit_, ('exit', enter[1]))

    async def test_lock_released_between_operations(self):
        """Тест: блокировка держится на одну операцию, а не на весь пакет"""
        await self.session.upload(self.local_path, 'one.mp4', 'dest')
        self.assertFalse(self.session._lock.locked())

        await self.session.move_node('fileA', 'arch')
        self.assertFalse(self.session._lock.locked())
        self.assertEqual([name for kind, name in self.events if kind == 'enter'], ['one.mp4', 'fileA'])


class TestProgressThrottle(unittest.TestCase):
    """Тесты для ProgressThrottle"""

    def test_throttle(self):
        now = [0.0]
        reports = []
        throttle = ProgressThrottle(lambda done, total: reports.append(done), total=100, clock=lambda: now[0])

        throttle(10)
        now[0] = 0.05
        throttle(20)
        now[0] = 0.1
        throttle(30)
        now[0] = 0.15
        throttle(40)
        now[0] = 0.35
        throttle(100)

        self.assertEqual(reports, [10, 30, 100])


if __name__ == '__main__':
    unittest.main()
