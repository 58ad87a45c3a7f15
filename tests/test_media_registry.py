from __future__ import annotations

import pytest

from core.errors import ConfigError
from core.media import registry
from core.media.local_handler import LocalMediaHandler
from core.media.registry import (
    create_handler,
    list_registered_handler_names,
    register_default_handlers,
    register_handler,
)
from core.media.s3_handler import S3MediaHandler
from repositories.file_record_repo import InMemoryFileRecordRepository


def test_default_handlers_registered_explicitly(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(registry, "_HANDLER_REGISTRY", {})
    assert list_registered_handler_names() == []

    register_default_handlers()
    register_default_handlers()

    assert list_registered_handler_names() == ["fs", "s3"]
    store = InMemoryFileRecordRepository()
    assert isinstance(create_handler("s3", file_store=store), S3MediaHandler)
    assert isinstance(create_handler("fs", file_store=store), LocalMediaHandler)


def test_duplicate_registration_is_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(registry, "_HANDLER_REGISTRY", {})
    register_handler("custom", LocalMediaHandler)

    with pytest.raises(ValueError):
        register_handler("custom", LocalMediaHandler)


def test_unknown_handler_lists_available(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(registry, "_HANDLER_REGISTRY", {})
    register_default_handlers()

    with pytest.raises(ConfigError) as exc_info:
        create_handler("gcs", file_store=InMemoryFileRecordRepository())

    assert "fs, s3" in str(exc_info.value)


def test_default_handlers_implement_media_handler():
    from core.media.provider import MediaHandler

    assert MediaHandler in S3MediaHandler.__mro__
    assert MediaHandler in LocalMediaHandler.__mro__
