"""
VideoInformation - результат разбора страницы outplayed.tv
Живёт только в рамках обработки одной ссылки, нигде не сохраняется
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class VideoInformation:
    """
    Информация о видео на странице

    Создается OutplayedService.extract().
    Используется UploadPipeline для скачивания и формирования имени файла.

    Attributes:
        category: Тег из заголовка страницы (между '#' и '|'), например 'Valorant'
        asset_url: Абсолютный URL самого видеофайла
        extension: Расширение файла из asset_url (может быть пустым)
    """
    category: str
    asset_url: str
    extension: str
