from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

import boto3
from boto3.exceptions import Boto3Error
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from core.errors import (
    BackendError,
    BatchDeleteError,
    ConfigError,
    MediaNotFoundError,
    UnsupportedError,
    client_error_code,
)
from core.media.config import S3MediaConfig, parse_media_config
from core.media.cors import cors_handler, get_header
from core.media.provider import FileRecordStore, MediaHandler
from core.media.streams import ByteCountingReader
from core.media.types import Download, FileRecord, HeaderResult, MediaBackend, ReadableStream, UploadResult
from core.media.uid import Uid, get_id_from_url

logger = logging.getLogger(__name__)

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}
# Another instance created the bucket first, or is creating it right now.
BENIGN_CREATE_CODES = {"BucketAlreadyExists", "BucketAlreadyOwnedByYou", "OperationAborted"}
MISSING_KEY_CODES = {"NoSuchKey", "NotFound"}
DELETE_BATCH_SIZE = 1000
REDIRECT_CONTENT_TYPE = "application/json; charset=utf-8"
_TRUE_VALUES = {"1", "t", "true"}


def _parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


class S3MediaHandler(MediaHandler):
    backend_name = MediaBackend.S3.value

    def __init__(self, file_store: FileRecordStore) -> None:
        self._store = file_store
        self._client: Any = None
        self._conf = S3MediaConfig()
        self._transfer_config = TransferConfig()

    @property
    def config(self) -> S3MediaConfig:
        return self._conf

    def init(self, config_json: str | bytes | dict | None, *, client: Any | None = None) -> None:
        conf = parse_media_config(S3MediaConfig, config_json)
        conf.validate_required()
        self._conf = conf

        self._client = client if client is not None else self._build_client(conf)
        self._ensure_bucket()

    def _build_client(self, conf: S3MediaConfig) -> Any:
        endpoint = conf.endpoint or None
        if endpoint and "://" not in endpoint:
            endpoint = ("http://" if conf.disable_ssl else "https://") + endpoint
        try:
            return boto3.client(
                "s3",
                region_name=conf.region,
                endpoint_url=endpoint,
                use_ssl=not conf.disable_ssl,
                aws_access_key_id=conf.access_key_id,
                aws_secret_access_key=conf.secret_access_key,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "path" if conf.force_path_style else "auto"},
                ),
            )
        except (BotoCoreError, ValueError) as err:
            raise ConfigError(f"failed to create S3 client: {err}") from err

    def _ensure_bucket(self) -> None:
        bucket = self._conf.bucket
        try:
            self._client.head_bucket(Bucket=bucket)
            return
        except ClientError as err:
            if client_error_code(err) not in MISSING_BUCKET_CODES:
                raise BackendError.wrap("head_bucket", bucket, err)
        except BotoCoreError as err:
            raise BackendError.wrap("head_bucket", bucket, err)

        create_args: dict[str, Any] = {"Bucket": bucket}
        if self._conf.region != "us-east-1":
            create_args["CreateBucketConfiguration"] = {"LocationConstraint": self._conf.region}
        try:
            self._client.create_bucket(**create_args)
        except ClientError as err:
            code = client_error_code(err)
            if code in BENIGN_CREATE_CODES:
                logger.warning("bucket %s provisioned concurrently (%s)", bucket, code)
                return
            raise BackendError.wrap("create_bucket", bucket, err)
        except BotoCoreError as err:
            raise BackendError.wrap("create_bucket", bucket, err)

        logger.info("created bucket %s", bucket)

        # Also verifies that the credentials can manage the new bucket.
        origins = list(self._conf.cors_origins) or ["*"]
        try:
            self._client.put_bucket_cors(
                Bucket=bucket,
                CORSConfiguration={
                    "CORSRules": [
                        {
                            "AllowedMethods": ["GET", "HEAD"],
                            "AllowedOrigins": origins,
                            "AllowedHeaders": ["*"],
                        }
                    ]
                },
            )
        except (BotoCoreError, ClientError) as err:
            raise BackendError.wrap("put_bucket_cors", bucket, err)

    def get_id_from_url(self, url: str) -> Uid:
        return get_id_from_url(url, self._conf.serve_url)

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

        quoted_etag = f'"{record.etag}"'
        if record.etag and get_header(request_headers, "If-None-Match") == quoted_etag:
            return HeaderResult(
                headers={"ETag": quoted_etag, "Cache-Control": self._conf.cache_control},
                status=304,
            )

        if method not in ("GET", "HEAD"):
            return HeaderResult()

        as_attachment = method == "GET" and _parse_bool(_query_value(url, "asatt"))
        signed_url = self._presign(method, fid.string32(), record, as_attachment)

        # The redirect may be cached by clients, but the signed URL expires
        # after presign_ttl seconds.
        return HeaderResult(
            headers={
                "Location": signed_url,
                "ETag": quoted_etag,
                "Content-Type": REDIRECT_CONTENT_TYPE,
                "Cache-Control": self._conf.cache_control,
            },
            status=308,
        )

    def _presign(self, method: str, key: str, record: FileRecord, as_attachment: bool) -> str:
        params: dict[str, Any] = {"Bucket": self._conf.bucket, "Key": key}
        if method == "GET":
            client_method = "get_object"
            params["ResponseCacheControl"] = self._conf.cache_control
            if record.mime_type:
                params["ResponseContentType"] = record.mime_type
            if as_attachment:
                params["ResponseContentDisposition"] = "attachment"
        else:
            client_method = "head_object"

        try:
            return self._client.generate_presigned_url(
                ClientMethod=client_method,
                Params=params,
                ExpiresIn=self._conf.presign_ttl,
                HttpMethod=method,
            )
        except (BotoCoreError, ClientError) as err:
            raise BackendError.wrap("presign", key, err)

    async def upload(self, record: FileRecord, stream: ReadableStream) -> UploadResult:
        key = record.uid.string32()

        try:
            await self._store.start_upload(record)
        except Exception:
            logger.warning("failed to create file record %s", record.id)
            raise

        counter = ByteCountingReader(stream)
        try:
            await run_in_threadpool(
                self._client.upload_fileobj,
                counter,
                self._conf.bucket,
                key,
                ExtraArgs={
                    "CacheControl": self._conf.cache_control,
                    "ContentType": record.mime_type or "application/octet-stream",
                },
                Config=self._transfer_config,
            )
            head = await run_in_threadpool(self._client.head_object, Bucket=self._conf.bucket, Key=key)
        except (BotoCoreError, ClientError, Boto3Error, OSError) as err:
            raise BackendError.wrap("upload", key, err)

        record.location = key
        etag = head.get("ETag")
        if etag:
            record.etag = etag.strip('"')

        return UploadResult(url=self._conf.serve_url + record.file_name(), size=counter.count)

    async def download(self, url: str) -> Download:
        raise UnsupportedError("download")

    async def delete(self, locations: list[str]) -> None:
        if not locations:
            return
        failures = await run_in_threadpool(self._delete_batches, list(locations))
        if failures:
            raise BatchDeleteError(failures)

    def _delete_batches(self, locations: list[str]) -> list[dict[str, str]]:
        failures: list[dict[str, str]] = []
        for start in range(0, len(locations), DELETE_BATCH_SIZE):
            chunk = locations[start:start + DELETE_BATCH_SIZE]
            try:
                response = self._client.delete_objects(
                    Bucket=self._conf.bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as err:
                raise BackendError.wrap("delete", chunk[0], err)

            for item in response.get("Errors") or []:
                code = str(item.get("Code", ""))
                if code in MISSING_KEY_CODES:
                    continue
                failures.append(
                    {"key": str(item.get("Key", "")), "code": code, "message": str(item.get("Message", ""))}
                )
        return failures


def _query_value(url: str, name: str) -> str | None:
    values = parse_qs(urlsplit(url).query).get(name)
    return values[0] if values else None
