"""
PerItemResult - итог обработки одной ссылки из пакета
"""
from dataclasses import dataclass
from typing import Optional

from outsaver.exceptions import OutsaverError

UPLOADED = 'UPLOADED'
SKIPPED = 'SKIPPED'


@dataclass
class PerItemResult:
    """
    Результат обработки ссылки

    Создается UploadPipeline для каждой ссылки пакета, в том же порядке.
    Используется ботом для отчёта автору.

    Attributes:
        url: Исходная ссылка
        status: UPLOADED | SKIPPED
        filename: Имя файла в MEGA (если UPLOADED)
        error: Исключение, из-за которого ссылка пропущена (если SKIPPED)
    """
    url: str
    status: str  # UPLOADED | SKIPPED
    filename: Optional[str] = None  # если UPLOADED
    error: Optional[OutsaverError] = None  # если SKIPPED

    @classmethod
    def uploaded(cls, url: str, filename: str) -> 'PerItemResult':
        return cls(url=url, status=UPLOADED, filename=filename)

    @classmethod
    def skipped(cls, url: str, error: OutsaverError) -> 'PerItemResult':
        return cls(url=url, status=SKIPPED, error=error)

    @property
    def reason(self) -> Optional[str]:
        """Человекочитаемая причина пропуска"""
        return str(self.error) if self.error is not None else None

    def is_uploaded(self) -> bool:
        return self.status == UPLOADED

    def is_skipped(self) -> bool:
        return self.status == SKIPPED
