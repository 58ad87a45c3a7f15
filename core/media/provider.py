from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from core.media.types import Download, FileRecord, HeaderResult, ReadableStream, UploadResult
from core.media.uid import Uid


class FileRecordStore(Protocol):
    async def get(self, file_id: str) -> FileRecord | None:
        ...

    async def start_upload(self, record: FileRecord) -> None:
        ...

    async def finish_upload(self, record: FileRecord, *, success: bool, size: int) -> FileRecord | None:
        ...

    async def delete_unused(self, *, older_than: int, limit: int) -> list[str]:
        ...


class MediaHandler(Protocol):
    backend_name: str

    def init(self, config_json: str | bytes | dict | None) -> None:
        ...

    async def headers(
        self,
        method: str,
        url: str,
        request_headers: Mapping[str, str],
        serve: bool,
    ) -> HeaderResult:
        ...

    async def upload(self, record: FileRecord, stream: ReadableStream) -> UploadResult:
        ...

    async def download(self, url: str) -> Download:
        ...

    async def delete(self, locations: list[str]) -> None:
        ...

    def get_id_from_url(self, url: str) -> Uid:
        ...
