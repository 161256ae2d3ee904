"""
Утилиты для работы со ссылками и именами файлов
"""
import re
from datetime import datetime
from typing import List

OUTPLAYED_URL_PREFIX = "https://outplayed.tv/media"

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

LINK_REGEX = re.compile(r"\bhttps?://\S+\b")

# Символы, запрещённые в именах узлов MEGA
FORBIDDEN_FILENAME_CHARS = '"*/:<>?\\|'
_FORBIDDEN_TABLE = str.maketrans('', '', FORBIDDEN_FILENAME_CHARS)


def extract_links(text: str) -> List[str]:
    """Все http(s) ссылки из текста в порядке появления"""
    return LINK_REGEX.findall(text or "")


def is_outplayed_url(url: str) -> bool:
    return url.startswith(OUTPLAYED_URL_PREFIX)


def contains_outplayed_link(text: str) -> bool:
    """Есть ли в сообщении ссылка на клип outplayed.tv"""
    return OUTPLAYED_URL_PREFIX in (text or "")


def sanitize_filename(name: str) -> str:
    """
    Удалить символы, недопустимые в именах MEGA

    Длину и регистр не меняет. Повторный вызов ничего не меняет.
    """
    return name.translate(_FORBIDDEN_TABLE)


def format_timestamp(moment: datetime) -> str:
    """Время в формате YYYYMMDDhhmmss"""
    return moment.strftime(TIMESTAMP_FORMAT)


def build_remote_filename(author: str, category: str, moment: datetime, extension: str) -> str:
    """
    Имя файла в MEGA: "{автор} - {категория} - {YYYYMMDDhhmmss}.{расширение}"
    Запрещённые символы удаляются уже после форматирования
    """
    filename = f"{author} - {category} - {format_timestamp(moment)}.{extension}"
    return sanitize_filename(filename)
