from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import BinaryIO

from starlette.concurrency import run_in_threadpool

from core.errors import BackendError, BatchDeleteError, MediaNotFoundError
from core.media.config import LocalMediaConfig, parse_media_config
from core.media.cors import cors_handler, get_header
from core.media.provider import FileRecordStore, MediaHandler
from core.media.streams import HashingReader
from core.media.types import Download, FileRecord, HeaderResult, MediaBackend, ReadableStream, UploadResult
from core.media.uid import Uid, get_id_from_url

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalMediaHandler(MediaHandler):
    """Stores media on the local filesystem and serves it directly."""

    backend_name = MediaBackend.LOCAL.value

    def __init__(self, file_store: FileRecordStore) -> None:
        self._store = file_store
        self._conf = LocalMediaConfig()
        self._root = Path(self._conf.upload_dir)

    @property
    def config(self) -> LocalMediaConfig:
        return self._conf

    def init(self, config_json: str | bytes | dict | None) -> None:
        self._conf = parse_media_config(LocalMediaConfig, config_json)
        self._root = Path(self._conf.upload_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    def get_id_from_url(self, url: str) -> Uid:
        return get_id_from_url(url, self._conf.serve_url)

    def _path_for(self, location: str) -> Path:
        if not location or Path(location).name != location or location in (".", ".."):
            raise ValueError(f"invalid location '{location}'")
        return self._root / location

    async def _get_file_record(self, fid: Uid) -> FileRecord:
        record = await self._store.get(str(fid))
        if record is None:
            raise MediaNotFoundError(str(fid))
        return record

    async def headers(
        self,
        method: str,
        url: str,
        request_headers: Mapping[str, str],
        serve: bool,
    ) -> HeaderResult:
        method = method.upper()
        cors_headers, status = cors_handler(method, request_headers, self._conf.cors_origins, serve)
        if status != 0 or method in ("POST", "PUT"):
            return HeaderResult(headers=cors_headers, status=status)

        fid = self.get_id_from_url(url)
        if fid.is_zero():
            raise MediaNotFoundError()
        record = await self._get_file_record(fid)

        headers = dict(cors_headers)
        headers["Cache-Control"] = self._conf.cache_control
        if not record.etag:
            return HeaderResult(headers=headers, status=0)

        quoted_etag = f'"{record.etag}"'
        headers["ETag"] = quoted_etag
        if get_header(request_headers, "If-None-Match") == quoted_etag:
            return HeaderResult(
                headers={"ETag": quoted_etag, "Cache-Control": self._conf.cache_control},
                status=304,
            )
        return HeaderResult(headers=headers, status=0)

    async def upload(self, record: FileRecord, stream: ReadableStream) -> UploadResult:
        key = record.uid.string32()

        try:
            await self._store.start_upload(record)
        except Exception:
            logger.warning("failed to create file record %s", record.id)
            raise

        reader = HashingReader(stream)
        try:
            await run_in_threadpool(self._write, self._path_for(key), reader)
        except OSError as err:
            raise BackendError.wrap("upload", key, err)

        record.location = key
        record.etag = reader.hexdigest()
        return UploadResult(url=self._conf.serve_url + record.file_name(), size=reader.count)

    @staticmethod
    def _write(path: Path, reader: HashingReader) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as target:
            while True:
                chunk = reader.read(CHUNK_SIZE)
                if not chunk:
                    break
                target.write(chunk)

    async def download(self, url: str) -> Download:
        fid = self.get_id_from_url(url)
        if fid.is_zero():
            raise MediaNotFoundError()
        record = await self._get_file_record(fid)

        try:
            stream: BinaryIO = await run_in_threadpool(self._path_for(record.location).open, "rb")
        except (FileNotFoundError, ValueError) as err:
            raise MediaNotFoundError(record.id) from err
        except OSError as err:
            raise BackendError.wrap("download", record.location, err)
        return Download(record=record, stream=stream)

    async def delete(self, locations: list[str]) -> None:
        if not locations:
            return
        failures = await run_in_threadpool(self._delete_files, list(locations))
        if failures:
            raise BatchDeleteError(failures)

    def _delete_files(self, locations: list[str]) -> list[dict[str, str]]:
        failures: list[dict[str, str]] = []
        for location in locations:
            try:
                self._path_for(location).unlink()
            except FileNotFoundError:
                continue
            except ValueError as err:
                failures.append({"key": location, "code": "InvalidKey", "message": str(err)})
            except OSError as err:
                failures.append({"key": location, "code": type(err).__name__, "message": str(err)})
        return failures
