from __future__ import annotations

import hashlib
import io
from concurrent.futures import ThreadPoolExecutor

from core.media.streams import ByteCountingReader, HashingReader


def test_counts_every_byte_read():
    reader = ByteCountingReader(io.BytesIO(b"x" * 1000))

    chunks = [reader.read(64) for _ in range(20)]

    assert b"".join(chunks) == b"x" * 1000
    assert reader.count == 1000


def test_concurrent_reads_are_counted_exactly():
    payload = bytes(range(256)) * 400
    reader = ByteCountingReader(io.BytesIO(payload))

    def _drain() -> int:
        total = 0
        while True:
            chunk = reader.read(7)
            if not chunk:
                return total
            total += len(chunk)

    with ThreadPoolExecutor(max_workers=8) as pool:
        totals = list(pool.map(lambda _: _drain(), range(8)))

    assert sum(totals) == len(payload)
    assert reader.count == len(payload)


def test_wrapper_is_not_seekable():
    reader = ByteCountingReader(io.BytesIO(b"abc"))

    assert not hasattr(reader, "seek")
    assert not hasattr(reader, "tell")


def test_hashing_reader_digest_matches_content():
    payload = b"hello world" * 10
    reader = HashingReader(io.BytesIO(payload))

    while reader.read(5):
        pass

    assert reader.count == len(payload)
    assert reader.hexdigest() == hashlib.md5(payload).hexdigest()
