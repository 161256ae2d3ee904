"""
Use case: загрузка пакета видео в MEGA
"""
import os
import logging
import tempfile
from datetime import datetime
from typing import Callable, List, Optional

from outsaver.downloader.downloader import MediaDownloader
from outsaver.exceptions import OutsaverError
from outsaver.models.upload_batch import UploadBatch
from outsaver.models.upload_result import PerItemResult
from outsaver.services.base import BaseService
from outsaver.storage.storage_session import StorageSession
from outsaver.utils.progress import UploadProgressBar
from outsaver.utils.utils import build_remote_filename

logger = logging.getLogger(__name__)

SCRATCH_DIR_PREFIX = 'outplayed'


class UploadPipeline:
    """
    Конвейер загрузки пакета ссылок

    Алгоритм (строго последовательно, по одной ссылке):
    1. Создает временную папку на весь пакет
    2. Получает VideoInformation через сервис сайта
    3. Скачивает видео во временную папку
    4. Формирует имя "{автор} - {категория} - {время}.{расширение}"
    5. Загружает в MEGA и сразу удаляет локальный файл
    6. Удаляет временную папку со всем содержимым

    Ошибка на любом шаге пропускает только эту ссылку - пакет продолжается.
    """

    def __init__(
        self,
        extractor: BaseService,
        downloader: MediaDownloader,
        storage: StorageSession,
        clock: Callable[[], datetime] = datetime.now,
        progress_factory: Optional[Callable[[str], UploadProgressBar]] = UploadProgressBar
    ):
        """
        Args:
            extractor: Сервис сайта (OutplayedService)
            downloader: MediaDownloader для скачивания видео
            storage: Авторизованная StorageSession (общая на процесс)
            clock: Источник текущего времени для имени файла
            progress_factory: Создает прогресс-бар по имени файла, None - без прогресса
        """
        self.extractor = extractor
        self.downloader = downloader
        self.storage = storage
        self.clock = clock
        self.progress_factory = progress_factory

    async def run(self, batch: UploadBatch) -> List[PerItemResult]:
        """
        Обработать пакет

        Returns:
            По одному PerItemResult на каждую ссылку, в порядке batch.urls
        """
        logger.info(f"[pipeline] Пакет от {batch.author}: {len(batch)} ссылок")
        results: List[PerItemResult] = []

        with tempfile.TemporaryDirectory(prefix=SCRATCH_DIR_PREFIX) as scratch_dir:
            for url in batch.urls:
                try:
                    filename = await self._process_url(url, batch, scratch_dir)
                except OutsaverError as e:
                    logger.warning(f"[pipeline] ⚠️ Пропускаю {url}: {e}")
                    results.append(PerItemResult.skipped(url, e))
                else:
                    results.append(PerItemResult.uploaded(url, filename))

        uploaded = sum(1 for result in results if result.is_uploaded())
        logger.info(f"[pipeline] Пакет от {batch.author} обработан: загружено {uploaded} из {len(results)}")
        return results

    async def _process_url(self, url: str, batch: UploadBatch, scratch_dir: str) -> str:
        info = await self.extractor.extract(url)
        local_path = await self.downloader.download(info.asset_url, scratch_dir, info.extension)

        filename = build_remote_filename(batch.author, info.category, self.clock(), info.extension)
        progress: Optional[UploadProgressBar] = self.progress_factory(filename) if self.progress_factory else None
        completed = False
        try:
            await self.storage.upload(local_path, filename, batch.destination_handle, progress=progress)
            completed = True
        finally:
            if progress is not None:
                progress.close(completed=completed)

        # Локальная копия удаляется только после подтверждённой загрузки
        self._remove_local_file(local_path)
        logger.info(f"[pipeline] ✅ {url} -> {filename}")
        return filename

    @staticmethod
    def _remove_local_file(path: str):
        try:
            os.remove(path)
            logger.info(f"[pipeline] Временный файл удален: {path}")
        except OSError as e:
            logger.warning(f"[pipeline] Не удалось удалить временный файл {path}: {e}")
