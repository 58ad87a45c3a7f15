from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from core.errors import ConfigError

DEFAULT_SERVE_URL = "/v0/file/s/"
DEFAULT_CACHE_CONTROL = "no-cache, must-revalidate"
DEFAULT_PRESIGN_TTL = 120
DEFAULT_UPLOAD_DIR = "uploads"


class MediaConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    serve_url: str = DEFAULT_SERVE_URL
    cors_origins: tuple[str, ...] = ()
    cache_control: str = DEFAULT_CACHE_CONTROL

    @field_validator("serve_url", mode="before")
    @classmethod
    def default_serve_url(cls, value: Any) -> Any:
        return value or DEFAULT_SERVE_URL

    @field_validator("cache_control", mode="before")
    @classmethod
    def default_cache_control(cls, value: Any) -> Any:
        return value or DEFAULT_CACHE_CONTROL

    @field_validator("cors_origins", mode="before")
    @classmethod
    def default_cors_origins(cls, value: Any) -> Any:
        return value or ()


class S3MediaConfig(MediaConfig):
    access_key_id: str = ""
    secret_access_key: str = ""
    region: str = ""
    disable_ssl: bool = False
    force_path_style: bool = False
    endpoint: str = ""
    bucket: str = ""
    presign_ttl: int = DEFAULT_PRESIGN_TTL

    @field_validator("access_key_id", "secret_access_key", "region", "endpoint", "bucket", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("presign_ttl", mode="before")
    @classmethod
    def default_presign_ttl(cls, value: Any) -> Any:
        if value is None or int(value) <= 0:
            return DEFAULT_PRESIGN_TTL
        return value

    def validate_required(self) -> None:
        if not self.access_key_id:
            raise ConfigError("missing Access Key ID")
        if not self.secret_access_key:
            raise ConfigError("missing Secret Access Key")
        if not self.region:
            raise ConfigError("missing Region")
        if not self.bucket:
            raise ConfigError("missing Bucket")


class LocalMediaConfig(MediaConfig):
    upload_dir: str = DEFAULT_UPLOAD_DIR

    @field_validator("upload_dir", mode="before")
    @classmethod
    def default_upload_dir(cls, value: Any) -> Any:
        return value or DEFAULT_UPLOAD_DIR


ConfigT = TypeVar("ConfigT", bound=MediaConfig)


def parse_media_config(model: type[ConfigT], raw: str | bytes | dict[str, Any] | None) -> ConfigT:
    try:
        if raw is None or raw == "" or raw == b"":
            return model()
        if isinstance(raw, dict):
            return model.model_validate(raw)
        return model.model_validate_json(raw)
    except ValidationError as err:
        raise ConfigError(f"failed to parse config: {err}") from err
