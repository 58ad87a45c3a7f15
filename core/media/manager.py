from __future__ import annotations

import logging
from threading import Lock

from core.media.provider import FileRecordStore, MediaHandler
from core.media.registry import create_handler, register_default_handlers
from core.settings import Settings, get_settings
from repositories.file_record_repo import InMemoryFileRecordRepository, MongoFileRecordRepository

logger = logging.getLogger(__name__)


def build_file_store(settings: Settings) -> FileRecordStore:
    if settings.file_store == "mongodb":
        return MongoFileRecordRepository(mongo_url=settings.mongo_url, db_name=settings.db_name)
    return InMemoryFileRecordRepository()


class MediaManager:
    _instance: "MediaManager | None" = None
    _lock = Lock()

    def __init__(self, handler: MediaHandler, file_store: FileRecordStore) -> None:
        self._handler = handler
        self._file_store = file_store

    @classmethod
    def configure(cls, handler: MediaHandler, file_store: FileRecordStore) -> "MediaManager":
        with cls._lock:
            cls._instance = cls(handler=handler, file_store=file_store)
            return cls._instance

    @classmethod
    def configure_from_settings(cls) -> "MediaManager":
        settings = get_settings()
        file_store = build_file_store(settings)

        register_default_handlers()
        handler = create_handler(settings.media_handler, file_store=file_store)
        handler.init(settings.media_config)
        logger.info("media handler '%s' initialized", handler.backend_name)

        return cls.configure(handler, file_store)

    @classmethod
    def get_instance(cls) -> "MediaManager":
        if cls._instance is None:
            return cls.configure_from_settings()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    @property
    def handler(self) -> MediaHandler:
        return self._handler

    @property
    def file_store(self) -> FileRecordStore:
        return self._file_store
