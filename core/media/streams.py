from __future__ import annotations

import hashlib
from threading import Lock

from core.media.types import ReadableStream


class ByteCountingReader:
    """Read-only stream wrapper that counts the bytes handed out.

    Managed transfers may read from worker threads, so the counter is updated
    under a lock. Only ``read`` is exposed; the wrapper is deliberately not
    seekable so the transfer consumes the source exactly once.
    """

    def __init__(self, stream: ReadableStream) -> None:
        self._stream = stream
        self._count = 0
        self._lock = Lock()

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if chunk:
            with self._lock:
                self._count += len(chunk)
        return chunk

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


class HashingReader(ByteCountingReader):
    """Byte counter that also keeps an MD5 digest of everything read."""

    def __init__(self, stream: ReadableStream) -> None:
        super().__init__(stream)
        self._digest = hashlib.md5()

    def read(self, size: int = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            with self._lock:
                self._digest.update(chunk)
        return chunk

    def hexdigest(self) -> str:
        with self._lock:
            return self._digest.hexdigest()
