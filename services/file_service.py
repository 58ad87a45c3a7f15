from __future__ import annotations

import logging
import time

from core.errors import MediaError
from core.media import FileRecord, MediaManager, Uid
from core.media.types import ReadableStream
from core.settings import get_settings
from schemas.file_schema import FileUploadOut

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def _epoch() -> int:
    return int(time.time())


async def upload_file(*, stream: ReadableStream, mime_type: str | None, user: str | None = None) -> FileUploadOut:
    manager = MediaManager.get_instance()
    record = FileRecord(id=str(Uid.generate()), mime_type=mime_type or DEFAULT_MIME_TYPE, user=user)

    try:
        result = await manager.handler.upload(record, stream)
    except Exception:
        await manager.file_store.finish_upload(record, success=False, size=0)
        raise

    await manager.file_store.finish_upload(record, success=True, size=result.size)
    return FileUploadOut(id=record.id, url=result.url, size=result.size, mime_type=record.mime_type)


async def collect_garbage(*, block_size: int, min_age_seconds: int) -> int:
    """Remove stale unfinished uploads and their stored objects.

    Returns the number of objects handed to the media handler for deletion.
    """
    manager = MediaManager.get_instance()
    locations = await manager.file_store.delete_unused(
        older_than=_epoch() - min_age_seconds,
        limit=block_size,
    )
    if not locations:
        return 0

    await manager.handler.delete(locations)
    logger.info("garbage collected %d stale upload(s)", len(locations))
    return len(locations)


async def run_scheduled_garbage_collection() -> None:
    settings = get_settings()
    try:
        await collect_garbage(
            block_size=settings.file_gc_block_size,
            min_age_seconds=settings.file_gc_min_age_seconds,
        )
    except MediaError:
        logger.exception("scheduled file garbage collection failed")
