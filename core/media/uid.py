from __future__ import annotations

import base64
import re
import binascii
import secrets
import struct
from dataclasses import dataclass
from typing import ClassVar
from urllib.parse import urlsplit

_UID_BASE64_LEN = 11
_UINT64_MAX = (1 << 64) - 1
_UID_BASE64_RE = re.compile(r"[A-Za-z0-9_-]{11}")


@dataclass(frozen=True)
class Uid:
    """Opaque 64-bit file identifier.

    ``str(uid)`` is the public form used in URLs; ``string32()`` is the
    fixed-width, lower-case form used as a storage key.
    """

    value: int = 0

    ZERO: ClassVar["Uid"]

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _UINT64_MAX:
            raise ValueError("uid must fit into 64 bits")

    @classmethod
    def generate(cls) -> "Uid":
        value = 0
        while value == 0:
            value = secrets.randbits(64)
        return cls(value)

    @classmethod
    def parse(cls, text: str) -> "Uid":
        if not text or len(text) != _UID_BASE64_LEN or not _UID_BASE64_RE.fullmatch(text):
            return cls.ZERO
        try:
            raw = base64.urlsafe_b64decode(text + "=")
        except (binascii.Error, ValueError):
            return cls.ZERO
        if len(raw) != 8:
            return cls.ZERO
        return cls(struct.unpack("<Q", raw)[0])

    def is_zero(self) -> bool:
        return self.value == 0

    def to_bytes(self) -> bytes:
        return struct.pack("<Q", self.value)

    def string32(self) -> str:
        return base64.b32encode(self.to_bytes()).decode("ascii").rstrip("=").lower()

    def __str__(self) -> str:
        if self.is_zero():
            return ""
        return base64.urlsafe_b64encode(self.to_bytes()).decode("ascii").rstrip("=")

    def __bool__(self) -> bool:
        return not self.is_zero()


Uid.ZERO = Uid(0)


def get_id_from_url(url: str, serve_url: str) -> Uid:
    """Extract the file id from a serve URL such as ``/v0/file/s/<id>.jpg``."""
    if not url or not serve_url:
        return Uid.ZERO

    parts = urlsplit(url)
    if serve_url.startswith("/"):
        target = parts.path
    else:
        target = f"{parts.scheme}://{parts.netloc}{parts.path}"

    if not target.startswith(serve_url):
        return Uid.ZERO

    file_name = target[len(serve_url):]
    if not file_name or "/" in file_name:
        return Uid.ZERO
    return Uid.parse(file_name.split(".", 1)[0])
