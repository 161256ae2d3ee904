"""
Модуль для скачивания видеофайлов во временную папку пакета
"""
import os
import asyncio
import logging
from datetime import datetime
from typing import Callable

import aiohttp

from outsaver.exceptions import DownloadError
from outsaver.utils.utils import format_timestamp

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class MediaDownloader:
    """
    Скачивает видео по прямой ссылке в файл

    НЕ создаёт и НЕ удаляет временную папку - ею владеет UploadPipeline.
    """

    def __init__(self, http: aiohttp.ClientSession, clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            http: Общая HTTP-сессия процесса
            clock: Источник текущего времени (для имени файла)
        """
        self.http = http
        self.clock = clock

    async def download(self, asset_url: str, into_dir: str, extension: str = '') -> str:
        """
        Скачать файл в into_dir

        Args:
            asset_url: Прямая ссылка на видео
            into_dir: Временная папка пакета
            extension: Расширение файла без точки

        Returns:
            Путь к скачанному файлу

        Raises:
            DownloadError: при ошибке сети или записи на диск
        """
        destination = self._build_destination(into_dir, extension)
        logger.info(f"[downloader] Скачиваю {asset_url} -> {destination}")

        try:
            async with self.http.get(asset_url) as response:
                if response.status >= 400:
                    raise DownloadError(f"Видео {asset_url} вернуло HTTP {response.status}")
                with open(destination, 'wb') as f:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        f.write(chunk)
        except DownloadError:
            self._remove_partial(destination)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._remove_partial(destination)
            raise DownloadError(f"Не удалось скачать {asset_url}: {e}") from e

        file_size_mb = os.path.getsize(destination) / (1024 * 1024)
        logger.info(f"[downloader] ✅ Скачано {file_size_mb:.2f} MB: {destination}")
        return destination

    def _build_destination(self, into_dir: str, extension: str) -> str:
        """Имя по времени с точностью до секунды; при совпадении добавляется -1, -2, ..."""
        stem = format_timestamp(self.clock())
        suffix = f".{extension}" if extension else ''

        candidate = os.path.join(into_dir, f"{stem}{suffix}")
        counter = 1
        while os.path.exists(candidate):
            candidate = os.path.join(into_dir, f"{stem}-{counter}{suffix}")
            counter += 1
        return candidate

    @staticmethod
    def _remove_partial(path: str):
        if os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"[downloader] ⚠️ Не удалось удалить недокачанный файл {path}: {e}")
