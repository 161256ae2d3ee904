"""
Загрузка конфигурации из переменных окружения (.env подхватывается через python-dotenv)
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from outsaver.exceptions import ConfigurationError

DEFAULT_CONFIRMATION_TIMEOUT = 15.0


@dataclass(frozen=True)
class TelegramConfig:
    token: str


@dataclass(frozen=True)
class MegaConfig:
    email: str
    password: str
    destination_node: str  # handle папки, куда загружаются видео
    archive_node: Optional[str] = None  # handle папки для команды /move


@dataclass(frozen=True)
class Config:
    telegram: TelegramConfig
    mega: MegaConfig
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT

    @classmethod
    def load(cls) -> 'Config':
        """
        Собрать конфигурацию из окружения

        Raises:
            ConfigurationError: если обязательная переменная не задана
        """
        load_dotenv()

        telegram = TelegramConfig(token=_require("BOT_TOKEN"))
        mega = MegaConfig(
            email=_require("MEGA_EMAIL"),
            password=_require("MEGA_PASSWORD"),
            destination_node=_require("MEGA_DESTINATION_NODE"),
            archive_node=os.getenv("MEGA_ARCHIVE_NODE") or None
        )
        return cls(
            telegram=telegram,
            mega=mega,
            confirmation_timeout=_parse_timeout(os.getenv("CONFIRMATION_TIMEOUT"))
        )


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigurationError(f"{name} не задан в переменных окружения")
    return value


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_CONFIRMATION_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigurationError(f"CONFIRMATION_TIMEOUT должен быть числом, получено: {raw!r}")
    if timeout <= 0:
        raise ConfigurationError("CONFIRMATION_TIMEOUT должен быть больше нуля")
    return timeout
