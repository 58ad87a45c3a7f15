from __future__ import annotations

import time
from dataclasses import replace
from threading import Lock
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient

from core.media.types import FileRecord, FileStatus
from schemas.file_schema import FileRecordDocument

_UNUSED_STATUSES = (FileStatus.PENDING, FileStatus.FAILED)


def _epoch() -> int:
    return int(time.time())


def _stale_location(record: FileRecord) -> str:
    # Object keys are derived from the id, so a stuck upload can be located
    # even when its location was never persisted.
    return record.location or record.uid.string32()


class InMemoryFileRecordRepository:
    def __init__(self) -> None:
        self._rows: dict[str, FileRecord] = {}
        self._lock = Lock()

    async def get(self, file_id: str) -> FileRecord | None:
        with self._lock:
            row = self._rows.get(file_id)
            return replace(row) if row is not None else None

    async def start_upload(self, record: FileRecord) -> None:
        now = _epoch()
        record.status = FileStatus.PENDING
        record.created_at = record.created_at or now
        record.updated_at = now
        with self._lock:
            if record.id in self._rows:
                raise ValueError(f"file record '{record.id}' already exists")
            self._rows[record.id] = replace(record)

    async def finish_upload(self, record: FileRecord, *, success: bool, size: int) -> FileRecord | None:
        with self._lock:
            row = self._rows.get(record.id)
            if row is None:
                return None
            row.updated_at = _epoch()
            if success:
                row.status = FileStatus.READY
                row.size = size
                row.location = record.location
                row.etag = record.etag
            else:
                row.status = FileStatus.FAILED
                row.size = 0
            return replace(row)

    async def delete_unused(self, *, older_than: int, limit: int) -> list[str]:
        with self._lock:
            stale = [
                row
                for row in self._rows.values()
                if row.status in _UNUSED_STATUSES and row.updated_at < older_than
            ][:limit]
            for row in stale:
                del self._rows[row.id]
        return [_stale_location(row) for row in stale]


class MongoFileRecordRepository:
    def __init__(self, *, mongo_url: str | None = None, db_name: str | None = None, collection: Any = None) -> None:
        if collection is None:
            client = AsyncIOMotorClient(mongo_url, serverSelectionTimeoutMS=2000)
            collection = client[db_name].files
        self._files = collection

    async def get(self, file_id: str) -> FileRecord | None:
        row = await self._files.find_one({"_id": file_id})
        if row is None:
            return None
        return FileRecordDocument(**row).to_record()

    async def start_upload(self, record: FileRecord) -> None:
        now = _epoch()
        record.status = FileStatus.PENDING
        record.created_at = record.created_at or now
        record.updated_at = now
        payload = FileRecordDocument.from_record(record).model_dump(by_alias=True, mode="json")
        await self._files.insert_one(payload)

    async def finish_upload(self, record: FileRecord, *, success: bool, size: int) -> FileRecord | None:
        if success:
            update = {
                "status": FileStatus.READY.value,
                "size": size,
                "location": record.location,
                "etag": record.etag,
            }
        else:
            update = {"status": FileStatus.FAILED.value, "size": 0}
        update["updated_at"] = _epoch()
        await self._files.update_one({"_id": record.id}, {"$set": update})
        return await self.get(record.id)

    async def delete_unused(self, *, older_than: int, limit: int) -> list[str]:
        cursor = self._files.find(
            {
                "status": {"$in": [status.value for status in _UNUSED_STATUSES]},
                "updated_at": {"$lt": older_than},
            }
        ).limit(limit)
        rows = await cursor.to_list(length=limit)
        if not rows:
            return []
        stale = [FileRecordDocument(**row).to_record() for row in rows]
        await self._files.delete_many({"_id": {"$in": [record.id for record in stale]}})
        return [_stale_location(record) for record in stale]
