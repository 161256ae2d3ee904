"""
Прогресс-бар загрузки в MEGA
"""
from typing import Optional

from tqdm import tqdm


class UploadProgressBar:
    """
    Колбэк прогресса для StorageSession.upload(), рисует tqdm-бар

    Бар создаётся при первом вызове, когда становится известен размер файла.
    """

    def __init__(self, description: str):
        self.description = description
        self.bar: Optional[tqdm] = None

    def __call__(self, transferred: int, total: int):
        if self.bar is None:
            self.bar = tqdm(total=total, unit='B', unit_scale=True, desc=self.description, leave=False)
        self.bar.update(transferred - self.bar.n)

    def close(self, completed: bool = False):
        if self.bar is None:
            return
        if completed and self.bar.total:
            self.bar.update(self.bar.total - self.bar.n)
        self.bar.close()
