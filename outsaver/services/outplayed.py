"""
Сервис для работы с outplayed.tv
Знает формат страницы клипа: заголовок "Игрок #Игра | outplayed.tv" и один тег <video>
"""
import asyncio
import logging
import posixpath
from urllib.parse import urljoin, urlparse

import aiohttp
from bs4 import BeautifulSoup

from outsaver.exceptions import (
    AmbiguousVideoError,
    NoAssetUrlError,
    NoSeparatorError,
    NoTagMarkerError,
    NoTitleError,
    NoVideoError,
    PageFetchError
)
from outsaver.models.video_information import VideoInformation
from outsaver.utils.utils import is_outplayed_url
from .base import BaseService, USER_AGENT

logger = logging.getLogger(__name__)

TAG_MARKER = '#'
SEPARATOR = '|'


class OutplayedService(BaseService):
    """
    Сервис для клипов outplayed.tv

    Знает:
    - Формат заголовка страницы
    - Где лежит ссылка на видеофайл

    НЕ знает:
    - MEGA
    - Telegram
    - Пользователей
    """

    def can_handle(self, url: str) -> bool:
        return is_outplayed_url(url)

    async def extract(self, url: str) -> VideoInformation:
        html = await self._fetch_page(url)
        info = self.parse_page(html, page_url=url)
        logger.info(f"[outplayed] {url}: категория={info.category!r}, видео={info.asset_url}")
        return info

    async def _fetch_page(self, url: str) -> str:
        try:
            async with self.http.get(url, headers={'User-Agent': USER_AGENT}) as response:
                if response.status >= 400:
                    raise PageFetchError(f"Страница {url} вернула HTTP {response.status}")
                # Недекодируемые байты заменяются на U+FFFD
                return await response.text(errors='replace')
        except LookupError as e:
            raise PageFetchError(f"Неизвестная кодировка страницы {url}: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PageFetchError(f"Не удалось открыть страницу {url}: {e}") from e

    def parse_page(self, html: str, page_url: str = '') -> VideoInformation:
        """
        Разобрать HTML страницы клипа

        Args:
            html: HTML страницы
            page_url: URL страницы, относительно него разрешается src видео

        Returns:
            VideoInformation

        Raises:
            NoTitleError, NoTagMarkerError, NoSeparatorError,
            NoVideoError, AmbiguousVideoError, NoAssetUrlError
        """
        soup = BeautifulSoup(html, 'html.parser')

        if soup.title is None:
            raise NoTitleError("На странице нет заголовка")
        category = extract_category(soup.title.get_text())

        # Ровно одно видео: если их несколько, не угадываем нужное
        videos = soup.find_all('video')
        if not videos:
            raise NoVideoError("На странице нет видео")
        if len(videos) > 1:
            raise AmbiguousVideoError(f"На странице {len(videos)} видео, ожидалось одно")

        src = videos[0].get('src')
        if not src:
            raise NoAssetUrlError("У видео нет атрибута src")
        asset_url = urljoin(page_url, src) if page_url else src

        return VideoInformation(
            category=category,
            asset_url=asset_url,
            extension=extension_from_url(asset_url)
        )


def extract_category(title: str) -> str:
    """
    Категория - текст между '#' и '|' в заголовке, без пробелов по краям

    "Player #Valorant | outplayed.tv" -> "Valorant"
    """
    tag_position = title.find(TAG_MARKER)
    if tag_position == -1:
        raise NoTagMarkerError(f"В заголовке нет '{TAG_MARKER}': {title!r}")
    separator_position = title.find(SEPARATOR)
    if separator_position == -1:
        raise NoSeparatorError(f"В заголовке нет '{SEPARATOR}': {title!r}")
    return title[tag_position + 1:separator_position].strip()


def extension_from_url(url: str) -> str:
    """Текст после последней точки в последнем сегменте пути, '' если точки нет"""
    segment = posixpath.basename(urlparse(url).path)
    if '.' not in segment:
        return ''
    return segment.rsplit('.', 1)[1]
