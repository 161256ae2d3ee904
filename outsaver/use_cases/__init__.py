"""
Use cases для бизнес-логики бота
"""
from outsaver.use_cases.upload_videos import UploadPipeline
from outsaver.use_cases.move_videos import MoveVideosUseCase

__all__ = [
    'UploadPipeline',
    'MoveVideosUseCase',
]
