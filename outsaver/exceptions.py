"""
Исключения outsaver

Фатальные: ConfigurationError, AuthError.
Остальные относятся к одному видео - конвейер пропускает его и идёт дальше.
"""


class OutsaverError(Exception):
    """Базовое исключение проекта"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(OutsaverError):
    """Не заданы переменные окружения или заданы неверно"""


class AuthError(OutsaverError):
    """Не удалось войти в аккаунт MEGA"""


class SessionStateError(OutsaverError):
    """Операция с узлами вызвана вне авторизованной сессии"""


# ========== Извлечение информации о видео ==========

class ExtractionError(OutsaverError):
    """Не удалось извлечь VideoInformation со страницы"""


class PageFetchError(ExtractionError):
    pass


class NoTitleError(ExtractionError):
    pass


class NoTagMarkerError(ExtractionError):
    pass


class NoSeparatorError(ExtractionError):
    pass


class NoVideoError(ExtractionError):
    pass


class AmbiguousVideoError(ExtractionError):
    pass


class NoAssetUrlError(ExtractionError):
    pass


# ========== Скачивание ==========

class DownloadError(OutsaverError):
    """Ошибка сети или файловой системы при скачивании видео"""


# ========== Удалённое хранилище ==========

class NodeLookupError(OutsaverError):
    pass


class NodeNotFoundError(NodeLookupError):
    def __init__(self, handle: str):
        super().__init__(f"Узел {handle} не найден в MEGA")
        self.handle = handle


class UploadError(OutsaverError):
    pass


class LocalIoError(UploadError):
    pass


class NoSuchDestinationError(UploadError):
    def __init__(self, handle: str):
        super().__init__(f"Папка назначения {handle} не найдена в MEGA")
        self.handle = handle


class TransferFailedError(UploadError):
    pass


class MoveError(OutsaverError):
    pass


class LogoutError(OutsaverError):
    pass
