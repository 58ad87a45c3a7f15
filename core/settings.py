from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_MEDIA_HANDLERS = {"fs", "s3"}
SUPPORTED_FILE_STORES = {"memory", "mongodb"}


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def _int_env(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    return int(value)


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    media_handler = (_env("MEDIA_HANDLER") or "fs").lower()
    if media_handler == "s3" and _env("MEDIA_CONFIG") is None and _env("MEDIA_CONFIG_FILE") is None:
        missing.append("MEDIA_CONFIG")

    file_store = (_env("FILE_STORE") or "memory").lower()
    if file_store == "mongodb":
        if _env("MONGO_URL") is None:
            missing.append("MONGO_URL")
        if _env("DB_NAME") is None:
            missing.append("DB_NAME")

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    media_handler = (_env("MEDIA_HANDLER") or "fs").lower()
    if media_handler not in SUPPORTED_MEDIA_HANDLERS:
        invalid_values.append("MEDIA_HANDLER must be one of: fs, s3")

    file_store = (_env("FILE_STORE") or "memory").lower()
    if file_store not in SUPPORTED_FILE_STORES:
        invalid_values.append("FILE_STORE must be one of: memory, mongodb")

    config_file = _env("MEDIA_CONFIG_FILE")
    if config_file is not None and not Path(config_file).is_file():
        invalid_values.append("MEDIA_CONFIG_FILE must point to an existing file")

    for var_name in ("FILE_GC_PERIOD_SECONDS", "FILE_GC_BLOCK_SIZE", "FILE_GC_MIN_AGE_SECONDS"):
        value = _env(var_name)
        if value is None:
            continue
        try:
            if int(value) < 0:
                raise ValueError("must not be negative")
        except ValueError:
            invalid_values.append(f"{var_name} must be a non-negative integer")

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    debug_include_error_details: bool
    media_handler: str
    media_config: str | None
    file_store: str
    mongo_url: str | None
    db_name: str | None
    file_gc_period_seconds: int
    file_gc_block_size: int
    file_gc_min_age_seconds: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


def _load_media_config() -> str | None:
    config_file = _env("MEDIA_CONFIG_FILE")
    if config_file is not None:
        return Path(config_file).read_text(encoding="utf-8")
    return _env("MEDIA_CONFIG")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()

    return Settings(
        env=os.getenv("ENV", "development"),
        debug_include_error_details=os.getenv("DEBUG_INCLUDE_ERROR_DETAILS", "false").lower()
        in {"1", "true", "yes"},
        media_handler=(_env("MEDIA_HANDLER") or "fs").lower(),
        media_config=_load_media_config(),
        file_store=(_env("FILE_STORE") or "memory").lower(),
        mongo_url=_env("MONGO_URL"),
        db_name=_env("DB_NAME"),
        file_gc_period_seconds=_int_env("FILE_GC_PERIOD_SECONDS", 60),
        file_gc_block_size=_int_env("FILE_GC_BLOCK_SIZE", 100),
        file_gc_min_age_seconds=_int_env("FILE_GC_MIN_AGE_SECONDS", 3600),
    )
