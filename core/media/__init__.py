from core.media.types import (
    Download,
    FileRecord,
    FileStatus,
    HeaderResult,
    MediaBackend,
    UploadResult,
)
from core.media.uid import Uid, get_id_from_url
from core.media.manager import MediaManager

__all__ = [
    "Download",
    "FileRecord",
    "FileStatus",
    "HeaderResult",
    "MediaBackend",
    "MediaManager",
    "Uid",
    "UploadResult",
    "get_id_from_url",
]
