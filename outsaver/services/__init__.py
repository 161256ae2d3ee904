"""
Сервисы для сайтов с видео
"""
from .base import BaseService
from .outplayed import OutplayedService

__all__ = ['BaseService', 'OutplayedService']
