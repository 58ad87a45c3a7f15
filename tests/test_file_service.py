from __future__ import annotations

import io

import pytest

from core.errors import BackendError
from core.media import MediaManager
from core.media.types import FileRecord, FileStatus, HeaderResult, UploadResult
from core.media.uid import Uid
from repositories.file_record_repo import InMemoryFileRecordRepository
from services import file_service


class _Handler:
    backend_name = "fake"

    def __init__(
        self,
        store: InMemoryFileRecordRepository,
        *,
        fail_upload: bool = False,
        read_error: Exception | None = None,
    ) -> None:
        self._store = store
        self.fail_upload = fail_upload
        self.read_error = read_error
        self.deleted: list[list[str]] = []

    def init(self, config_json) -> None:
        return None

    async def headers(self, method, url, request_headers, serve) -> HeaderResult:
        return HeaderResult()

    async def upload(self, record: FileRecord, stream) -> UploadResult:
        await self._store.start_upload(record)
        if self.read_error is not None:
            raise self.read_error
        data = stream.read()
        if self.fail_upload:
            raise BackendError("upload", record.uid.string32(), code="SlowDown")
        record.location = record.uid.string32()
        record.etag = "etag"
        return UploadResult(url=f"/v0/file/s/{record.file_name()}", size=len(data))

    async def download(self, url: str):
        raise NotImplementedError

    async def delete(self, locations: list[str]) -> None:
        self.deleted.append(locations)

    def get_id_from_url(self, url: str) -> Uid:
        return Uid.ZERO


@pytest.fixture
def store():
    repo = InMemoryFileRecordRepository()
    yield repo
    MediaManager.reset()


@pytest.mark.asyncio
async def test_upload_file_finishes_record(store):
    MediaManager.configure(_Handler(store), store)

    uploaded = await file_service.upload_file(stream=io.BytesIO(b"12345"), mime_type="image/png", user="u1")

    record = await store.get(uploaded.id)
    assert uploaded.size == 5
    assert uploaded.url.endswith(".png")
    assert record is not None
    assert record.status == FileStatus.READY
    assert record.etag == "etag"
    assert record.user == "u1"


@pytest.mark.asyncio
async def test_upload_file_marks_failed_on_backend_error(store):
    MediaManager.configure(_Handler(store, fail_upload=True), store)

    with pytest.raises(BackendError):
        await file_service.upload_file(stream=io.BytesIO(b"12345"), mime_type=None)

    failed = await store.delete_unused(older_than=2**40, limit=10)
    assert len(failed) == 1


@pytest.mark.asyncio
async def test_collect_garbage_deletes_stale_objects(store):
    handler = _Handler(store)
    MediaManager.configure(handler, store)
    record = FileRecord(id=str(Uid.generate()), mime_type="image/png")
    await store.start_upload(record)

    removed = await file_service.collect_garbage(block_size=10, min_age_seconds=-60)

    assert removed == 1
    assert handler.deleted == [[record.uid.string32()]]


@pytest.mark.asyncio
async def test_collect_garbage_without_candidates_skips_backend(store):
    handler = _Handler(store)
    MediaManager.configure(handler, store)

    removed = await file_service.collect_garbage(block_size=10, min_age_seconds=3600)

    assert removed == 0
    assert handler.deleted == []


@pytest.mark.asyncio
async def test_upload_file_marks_failed_when_stream_breaks(store):
    MediaManager.configure(_Handler(store, read_error=OSError("client disconnected")), store)

    with pytest.raises(OSError):
        await file_service.upload_file(stream=io.BytesIO(b"12345"), mime_type="image/png")

    failed = await store.delete_unused(older_than=2**40, limit=10)
    assert len(failed) == 1
