"""
Работа с удалённым хранилищем MEGA
"""
from .mega_api import MegaApiClient, MegaApiError
from .storage_session import StorageSession, SessionState, ProgressThrottle

__all__ = ['MegaApiClient', 'MegaApiError', 'StorageSession', 'SessionState', 'ProgressThrottle']
