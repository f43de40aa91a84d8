from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Protocol, runtime_checkable


# ---------------------------------------------------------------------
# Backend-neutral faults
# ---------------------------------------------------------------------

class StorageError(RuntimeError):
    """
    Any fault signaled by the object store.

    Concrete bindings translate their SDK errors into this family so nothing
    SDK-specific reaches the gateway.
    """

    def __init__(self, message: str, code: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ObjectNotFoundError(StorageError):
    pass


class BucketNotFoundError(StorageError):
    pass


class BucketAlreadyExistsError(StorageError):
    pass


# ---------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class BucketInfo:
    name: str
    created: Optional[datetime] = None


@dataclass(frozen=True)
class ObjectStat:
    bucket: str
    key: str
    size: int
    content_type: str
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteFailure:
    key: str
    code: str
    message: str = ""


@runtime_checkable
class ObjectStoreClient(Protocol):
    """
    Capability set of an S3-compatible object store.

    One instance is built at startup and reused for the process lifetime.
    Every method raises StorageError (or a subclass) on backend faults.
    """

    def bucket_exists(self, bucket: str) -> bool: ...

    def make_bucket(self, bucket: str) -> None: ...

    def stat_object(self, bucket: str, key: str) -> ObjectStat: ...

    def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None: ...

    def get_object(self, bucket: str, key: str) -> bytes: ...

    def remove_object(self, bucket: str, key: str) -> None: ...

    def remove_objects(self, bucket: str, keys: Iterable[str]) -> List[DeleteFailure]:
        """Batch removal. Returns the per-key failures (empty list when all succeeded)."""
        ...

    def copy_object(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None: ...

    def list_buckets(self) -> List[BucketInfo]: ...

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[str]:
        """Lazy, finite sequence of object keys. Faults surface while iterating."""
        ...

    def get_object_tags(self, bucket: str, key: str) -> Dict[str, str]: ...

    def set_object_tags(self, bucket: str, key: str, tags: Dict[str, str]) -> None:
        """Replace (not merge) the object's tag set."""
        ...

    def presigned_get_object(self, bucket: str, key: str, expires: timedelta) -> str: ...

    def presigned_put_object(self, bucket: str, key: str, expires: timedelta) -> str: ...
