"""
Use case: перемещение загруженных видео в другую папку MEGA
"""
import logging
from typing import Dict, Iterable, List

from outsaver.exceptions import MoveError, NodeLookupError
from outsaver.storage.storage_session import StorageSession

logger = logging.getLogger(__name__)


class MoveVideosUseCase:
    """Use case для переноса видео по именам (например, из промежуточной папки в архив)"""

    def __init__(self, storage: StorageSession):
        """
        Args:
            storage: Авторизованная StorageSession
        """
        self.storage = storage

    async def execute(self, names: Iterable[str], destination_handle: str) -> Dict[str, List]:
        """
        Найти узлы по именам и переместить каждый в destination_handle

        Args:
            names: Имена файлов в MEGA
            destination_handle: handle папки назначения

        Returns:
            dict с ключами:
                - moved: имена перемещённых узлов
                - not_found: имена, которых нет в MEGA
                - failed: пары (имя, причина) для неудачных перемещений
        """
        wanted = [name for name in dict.fromkeys(names) if name]
        result = {'moved': [], 'not_found': [], 'failed': []}
        if not wanted:
            return result

        try:
            nodes = await self.storage.resolve_nodes_by_name(wanted)
        except NodeLookupError as e:
            logger.error(f"[move] ❌ {e}")
            result['failed'] = [(name, str(e)) for name in wanted]
            return result

        found_names = {node.name for node in nodes}
        result['not_found'] = [name for name in wanted if name not in found_names]

        # Каждый узел перемещается отдельно: дерево перечитывается перед каждым переносом
        for node in nodes:
            try:
                await self.storage.move_node(node.handle, destination_handle)
            except MoveError as e:
                logger.warning(f"[move] ⚠️ {node.name}: {e}")
                result['failed'].append((node.name, str(e)))
            else:
                result['moved'].append(node.name)

        logger.info(
            f"[move] Перемещено {len(result['moved'])}, не найдено {len(result['not_found'])}, "
            f"ошибок {len(result['failed'])}"
        )
        return result
