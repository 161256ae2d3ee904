"""
UploadBatch - набор ссылок из одного сообщения
"""
from dataclasses import dataclass, field
from typing import List


@dataclass
class UploadBatch:
    """
    Пакет на загрузку

    Создается обработчиком сообщений бота после подтверждения автором.
    Используется UploadPipeline.run(), нигде не сохраняется.

    Attributes:
        urls: Ссылки в порядке появления в сообщении
        author: Отображаемое имя автора сообщения (попадает в имя файла)
        destination_handle: handle папки MEGA, куда загружать
    """
    urls: List[str] = field(default_factory=list)
    author: str = ""
    destination_handle: str = ""

    def __len__(self) -> int:
        return len(self.urls)
