"""
Утилиты для работы со ссылками и именами файлов
"""
from .utils import (
    OUTPLAYED_URL_PREFIX,
    TIMESTAMP_FORMAT,
    FORBIDDEN_FILENAME_CHARS,
    extract_links,
    is_outplayed_url,
    contains_outplayed_link,
    sanitize_filename,
    format_timestamp,
    build_remote_filename
)

__all__ = [
    'OUTPLAYED_URL_PREFIX',
    'TIMESTAMP_FORMAT',
    'FORBIDDEN_FILENAME_CHARS',
    'extract_links',
    'is_outplayed_url',
    'contains_outplayed_link',
    'sanitize_filename',
    'format_timestamp',
    'build_remote_filename'
]
