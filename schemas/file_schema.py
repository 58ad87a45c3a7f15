from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from core.media.types import FileRecord, FileStatus


class FileRecordDocument(BaseModel):
    id: str = Field(alias="_id")
    user: str | None = None
    mime_type: str
    location: str = ""
    etag: str = ""
    status: FileStatus = FileStatus.PENDING
    size: int = 0
    created_at: int
    updated_at: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordDocument":
        return cls(
            id=record.id,
            user=record.user,
            mime_type=record.mime_type,
            location=record.location,
            etag=record.etag,
            status=record.status,
            size=record.size,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_record(self) -> FileRecord:
        return FileRecord(
            id=self.id,
            user=self.user,
            mime_type=self.mime_type,
            location=self.location,
            etag=self.etag,
            status=self.status,
            size=self.size,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class FileUploadOut(BaseModel):
    id: str
    url: str
    size: int
    mime_type: str
