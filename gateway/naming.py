from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.errors import InvalidInput


def safe_object_name(name: Optional[str]) -> str:
    """
    Reduce a user-supplied file name to its base name.

    Strips every directory component (either separator style), so object keys
    stay flat and "../../etc/passwd" becomes "passwd". The base name is kept
    verbatim, surrounding whitespace included.
    """
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1]
    if base in ("", ".", ".."):
        raise InvalidInput(f"Invalid file name: {name!r}")
    return base


def resolve_bucket(bucket: Optional[str], default: str) -> str:
    """Caller override wins; blank means 'not supplied'."""
    b = (bucket or "").strip()
    return b or default


@dataclass(frozen=True)
class StorageTarget:
    bucket: str
    key: str

    @classmethod
    def resolve(cls, file_name: Optional[str], bucket: Optional[str], default_bucket: str) -> "StorageTarget":
        return cls(bucket=resolve_bucket(bucket, default_bucket), key=safe_object_name(file_name))

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"
