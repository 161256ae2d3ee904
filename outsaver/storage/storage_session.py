"""
StorageSession - единственная авторизованная сессия MEGA на процесс

Каждая операция с узлами получает свежий снимок дерева: дерево могут менять
другие клиенты, а устаревший handle может указывать на перемещённый или удалённый узел.
"""
import os
import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional

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
from outsaver.models.remote_node import NodeSnapshot, RemoteNode
from .mega_api import MegaApiClient, MegaApiError

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL_SECONDS = 0.1

UploadProgressCallback = Callable[[int, int], None]


class SessionState:
    UNAUTHENTICATED = 'UNAUTHENTICATED'
    AUTHENTICATED = 'AUTHENTICATED'
    LOGGED_OUT = 'LOGGED_OUT'


class ProgressThrottle:
    """Пропускает вызовы колбэка прогресса не чаще одного раза в interval секунд"""

    def __init__(
        self,
        callback: UploadProgressCallback,
        total: int,
        interval: float = PROGRESS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.callback = callback
        self.total = total
        self.interval = interval
        self.clock = clock
        self._last_report: Optional[float] = None

    def __call__(self, transferred: int):
        now = self.clock()
        if self._last_report is not None and now - self._last_report < self.interval:
            return
        self._last_report = now
        self.callback(transferred, self.total)


class StorageSession:
    """
    Сессия удалённого хранилища

    Жизненный цикл: UNAUTHENTICATED -> login() -> AUTHENTICATED -> logout() -> LOGGED_OUT.
    Операции с узлами доступны только в AUTHENTICATED, иначе SessionStateError.

    Все обращения к API идут под одной блокировкой, которая держится на время
    одной операции (одной загрузки), а не всего пакета.
    """

    def __init__(self, http: aiohttp.ClientSession, client: Optional[MegaApiClient] = None):
        """
        Args:
            http: Общая HTTP-сессия процесса
            client: Клиент протокола (по умолчанию создаётся поверх http)
        """
        self.client = client or MegaApiClient(http)
        self.state = SessionState.UNAUTHENTICATED
        self._lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def _require_authenticated(self):
        if not self.is_authenticated:
            raise SessionStateError(f"Сессия MEGA не авторизована (состояние {self.state})")

    # ========== Вход / выход ==========

    async def login(self, email: str, password: str):
        """
        Войти в аккаунт. Повторных попыток нет: ошибка фатальна для процесса

        Raises:
            AuthError: если вход не удался
            SessionStateError: если вход уже выполнялся
        """
        if self.state != SessionState.UNAUTHENTICATED:
            raise SessionStateError("Вход в MEGA выполняется один раз за время жизни процесса")

        async with self._lock:
            try:
                await self.client.login(email, password)
            except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"[mega] ❌ Не удалось войти в MEGA: {e}")
                raise AuthError(f"Не удалось войти в MEGA: {e}") from e
            self.state = SessionState.AUTHENTICATED
        logger.info("[mega] ✅ Сессия MEGA открыта")

    async def logout(self):
        """
        Завершить сессию. После вызова сессия считается закрытой в любом случае

        Raises:
            LogoutError: если сервер не подтвердил выход (только для логирования)
        """
        self._require_authenticated()
        async with self._lock:
            self.state = SessionState.LOGGED_OUT
            try:
                await self.client.logout()
            except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise LogoutError(f"Не удалось завершить сессию MEGA: {e}") from e
        logger.info("[mega] Сессия MEGA закрыта")

    # ========== Поиск узлов ==========

    async def fetch_snapshot(self) -> NodeSnapshot:
        """
        Свежий список всех узлов аккаунта

        Raises:
            NodeLookupError: если список не удалось получить
        """
        self._require_authenticated()
        async with self._lock:
            try:
                return await self._fetch_snapshot_locked()
            except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise NodeLookupError(f"Не удалось получить список узлов MEGA: {e}") from e

    async def _fetch_snapshot_locked(self) -> NodeSnapshot:
        return NodeSnapshot(nodes=await self.client.fetch_nodes())

    async def resolve_node_by_handle(self, handle: str) -> RemoteNode:
        """
        Raises:
            NodeNotFoundError: если в свежем снимке нет узла с таким handle
        """
        snapshot = await self.fetch_snapshot()
        node = snapshot.get_node_by_handle(handle)
        if node is None:
            raise NodeNotFoundError(handle)
        return node

    async def resolve_nodes_by_name(self, names: Iterable[str]) -> List[RemoteNode]:
        """Все узлы с именами из names, в порядке списка MEGA"""
        snapshot = await self.fetch_snapshot()
        return snapshot.find_by_names(names)

    # ========== Загрузка ==========

    async def upload(
        self,
        local_path: str,
        remote_filename: str,
        destination_handle: str,
        progress: Optional[UploadProgressCallback] = None
    ) -> str:
        """
        Загрузить локальный файл в папку MEGA

        Args:
            local_path: Путь к файлу
            remote_filename: Имя файла в MEGA
            destination_handle: handle папки назначения
            progress: Колбэк (отправлено байт, всего байт), не чаще раза в 100 мс

        Returns:
            handle созданного узла

        Raises:
            LocalIoError: файл не открывается или не читается
            NoSuchDestinationError: папки назначения нет в MEGA
            TransferFailedError: ошибка при передаче (без повторов)
        """
        self._require_authenticated()

        try:
            file = await asyncio.to_thread(open, local_path, 'rb')
        except OSError as e:
            raise LocalIoError(f"Не удалось открыть {local_path}: {e}") from e

        with file:
            try:
                size = os.fstat(file.fileno()).st_size
            except OSError as e:
                raise LocalIoError(f"Не удалось получить размер {local_path}: {e}") from e

            async with self._lock:
                try:
                    snapshot = await self._fetch_snapshot_locked()
                except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                    raise TransferFailedError(f"Не удалось получить список узлов MEGA: {e}") from e
                destination = snapshot.get_node_by_handle(destination_handle)
                if destination is None:
                    raise NoSuchDestinationError(destination_handle)

                throttle = ProgressThrottle(progress, size) if progress is not None else None
                logger.info(f"[mega] Загружаю {remote_filename} ({size} байт) в {destination.name}")
                try:
                    handle = await self.client.upload(
                        file,
                        size,
                        remote_filename,
                        destination.handle,
                        progress=throttle
                    )
                except OSError as e:
                    raise LocalIoError(f"Ошибка чтения {local_path}: {e}") from e
                except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                    raise TransferFailedError(f"Ошибка загрузки {remote_filename}: {e}") from e

        logger.info(f"[mega] ✅ Загружено: {remote_filename} (handle={handle})")
        return handle

    # ========== Перемещение ==========

    async def move_node(self, source_handle: str, destination_handle: str):
        """
        Переместить узел source_handle в папку destination_handle

        Raises:
            MoveError: если какого-то узла нет или сервер отказал
        """
        self._require_authenticated()
        async with self._lock:
            try:
                snapshot = await self._fetch_snapshot_locked()
            except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise MoveError(f"Не удалось получить список узлов MEGA: {e}") from e

            source = snapshot.get_node_by_handle(source_handle)
            if source is None:
                raise MoveError(f"Перемещаемый узел {source_handle} не найден в MEGA")
            destination = snapshot.get_node_by_handle(destination_handle)
            if destination is None:
                raise MoveError(f"Папка назначения {destination_handle} не найдена в MEGA")

            try:
                await self.client.move(source.handle, destination.handle)
            except (MegaApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise MoveError(f"Не удалось переместить {source.name}: {e}") from e
        logger.info(f"[mega] Перемещено: {source.name} -> {destination.name}")
