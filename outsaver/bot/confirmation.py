"""
Подтверждение загрузки автором сообщения: ✅ / ❌ или таймаут
"""
import asyncio
import logging
from typing import Dict, Hashable, Tuple

logger = logging.getLogger(__name__)

# Решения
ACCEPT = 'ACCEPT'
REJECT = 'REJECT'
TIMEOUT = 'TIMEOUT'

# Итоги нажатия кнопки
RESOLVED = 'RESOLVED'
NOT_AUTHOR = 'NOT_AUTHOR'
EXPIRED = 'EXPIRED'


class ConfirmationGate:
    """
    Ожидание ответа автора на запрос подтверждения

    Обработчик сообщения ждёт в wait(), обработчик кнопок вызывает resolve().
    Ключ - (chat_id, message_id) сообщения с кнопками.
    """

    def __init__(self):
        self._pending: Dict[Hashable, Tuple[int, asyncio.Future]] = {}

    async def wait(self, key: Hashable, author_id: int, timeout: float) -> str:
        """
        Дождаться решения автора

        Returns:
            ACCEPT, REJECT или TIMEOUT
        """
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = (author_id, future)
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.info(f"[bot] Подтверждение {key} не получено за {timeout} с")
            return TIMEOUT
        finally:
            self._pending.pop(key, None)

    def resolve(self, key: Hashable, user_id: int, decision: str) -> str:
        """
        Передать решение из нажатой кнопки

        Returns:
            RESOLVED - решение принято
            NOT_AUTHOR - нажал не автор, решение проигнорировано
            EXPIRED - запрос уже не ждёт ответа
        """
        pending = self._pending.get(key)
        if pending is None:
            return EXPIRED
        author_id, future = pending
        if user_id != author_id:
            return NOT_AUTHOR
        if future.done():
            return EXPIRED
        future.set_result(decision)
        return RESOLVED

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending
