from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Protocol

from core.media.uid import Uid


class MediaBackend(str, Enum):
    LOCAL = "fs"
    S3 = "s3"


class FileStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass
class FileRecord:
    id: str
    mime_type: str
    user: str | None = None
    location: str = ""
    etag: str = ""
    status: FileStatus = FileStatus.PENDING
    size: int = 0
    created_at: int = 0
    updated_at: int = 0

    @property
    def uid(self) -> Uid:
        return Uid.parse(self.id)

    def file_name(self) -> str:
        extension = mimetypes.guess_extension(self.mime_type or "") or ""
        return f"{self.id}{extension}"


@dataclass(frozen=True)
class HeaderResult:
    headers: dict[str, str] = field(default_factory=dict)
    status: int = 0


@dataclass(frozen=True)
class UploadResult:
    url: str
    size: int


class ReadableStream(Protocol):
    def read(self, size: int = -1) -> bytes:
        ...


@dataclass
class Download:
    record: FileRecord
    stream: BinaryIO
