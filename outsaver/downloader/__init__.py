"""
Модуль для скачивания видео
"""
from .downloader import MediaDownloader

__all__ = ['MediaDownloader']
