"""
Базовый класс для сервисов сайтов с видео
"""
from abc import ABC, abstractmethod
import logging

import aiohttp

from outsaver.models.video_information import VideoInformation

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'


class BaseService(ABC):
    """
    Базовый класс для всех сервисов сайтов

    Каждый сервис знает только свой сайт и умеет получить VideoInformation.
    НЕ скачивает видео, НЕ работает с MEGA, НЕ работает с Telegram.
    """

    def __init__(self, http: aiohttp.ClientSession):
        """
        Args:
            http: Общая HTTP-сессия процесса
        """
        self.http = http
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """
        Может ли сервис обработать этот URL

        Args:
            url: URL страницы с видео

        Returns:
            True если сервис может обработать URL, False иначе
        """
        pass

    @abstractmethod
    async def extract(self, url: str) -> VideoInformation:
        """
        Получить информацию о видео со страницы

        Args:
            url: URL страницы с видео

        Returns:
            VideoInformation

        Raises:
            ExtractionError: если страница не подходит под формат сайта
        """
        pass
