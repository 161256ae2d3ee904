"""
Модели данных конвейера загрузки
"""
from .video_information import VideoInformation
from .remote_node import RemoteNode, NodeSnapshot, NodeKind
from .upload_batch import UploadBatch
from .upload_result import PerItemResult

__all__ = ['VideoInformation', 'RemoteNode', 'NodeSnapshot', 'NodeKind', 'UploadBatch', 'PerItemResult']
