from __future__ import annotations

from typing import Callable

from core.errors import ConfigError
from core.media.provider import FileRecordStore, MediaHandler
from core.media.types import MediaBackend

HandlerFactory = Callable[[FileRecordStore], MediaHandler]
_HANDLER_REGISTRY: dict[str, HandlerFactory] = {}


def register_handler(name: str, factory: HandlerFactory) -> None:
    if name in _HANDLER_REGISTRY:
        raise ValueError(f"Media handler '{name}' is already registered")
    _HANDLER_REGISTRY[name] = factory


def register_default_handlers() -> None:
    from core.media.local_handler import LocalMediaHandler
    from core.media.s3_handler import S3MediaHandler

    for name, factory in (
        (MediaBackend.LOCAL.value, LocalMediaHandler),
        (MediaBackend.S3.value, S3MediaHandler),
    ):
        if name not in _HANDLER_REGISTRY:
            register_handler(name, factory)


def create_handler(name: str, *, file_store: FileRecordStore) -> MediaHandler:
    factory = _HANDLER_REGISTRY.get(name)
    if factory is None:
        valid_names = ", ".join(sorted(_HANDLER_REGISTRY)) or "<none>"
        raise ConfigError(f"Media handler '{name}' is not registered. Available handlers: {valid_names}")
    return factory(file_store)


def list_registered_handler_names() -> list[str]:
    return sorted(_HANDLER_REGISTRY.keys())
