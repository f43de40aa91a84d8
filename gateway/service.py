from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from core.errors import BackendError, InvalidInput, NotFound
from gateway.naming import StorageTarget, resolve_bucket, safe_object_name
from providers.storage import (
    BucketAlreadyExistsError,
    BucketNotFoundError,
    ObjectNotFoundError,
    ObjectStoreClient,
    StorageError,
)

log = logging.getLogger(__name__)

PRESIGN_EXPIRY = timedelta(seconds=600)
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Delete failures with these codes mean "already gone"
_MISSING_CODES = ("NoSuchKey", "NoSuchObject")


# ---------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ObjectMetadata:
    target: StorageTarget
    size: int
    content_type: str
    last_modified: Optional[datetime]
    metadata: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PresignedGrant:
    url: str
    target: StorageTarget
    expiry: timedelta = PRESIGN_EXPIRY


@dataclass(frozen=True)
class BucketListing:
    bucket: str
    created: Optional[datetime]
    objects: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.objects)


@dataclass(frozen=True)
class BulkDeleteResult:
    bucket: str
    count: int


@dataclass(frozen=True)
class CopyResult:
    source: StorageTarget
    destination: StorageTarget
    moved: bool


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

@contextmanager
def _storage_errors(what: str, not_found: Optional[str] = None):
    """
    Translate backend faults at the gateway boundary.

    not_found: message for NotFound when a missing bucket/object is a caller
    error for this step; when None, a missing resource is a BackendError.
    """
    try:
        yield
    except (ObjectNotFoundError, BucketNotFoundError) as e:
        if not_found is not None:
            raise NotFound(not_found) from e
        log.warning("%s failed: %s", what, e)
        raise BackendError(f"Storage backend error: {e.message}") from e
    except StorageError as e:
        log.warning("%s failed: %s", what, e)
        raise BackendError(f"Storage backend error: {e.message}") from e


def ensure_bucket(store: ObjectStoreClient, bucket: str) -> bool:
    """
    Idempotent bucket provisioning (check-then-create).

    A create that loses the race to another caller is not an error.
    Returns True when this call created the bucket. Raises StorageError.
    """
    if store.bucket_exists(bucket):
        return False
    try:
        store.make_bucket(bucket)
    except BucketAlreadyExistsError:
        log.info("Bucket %s was created concurrently", bucket)
        return False
    log.info("Bucket created: %s", bucket)
    return True


# ---------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------

class ObjectGateway:
    """
    High-level object storage operations over an ObjectStoreClient.

    Stateless between calls: the store client and the default bucket are the
    only things carried, and both are fixed at construction. Every file name
    is sanitized before it reaches the store, and no StorageError escapes;
    callers only ever see core.errors types.
    """

    def __init__(self, store: ObjectStoreClient, default_bucket: str) -> None:
        self.store = store
        self.default_bucket = default_bucket

    def _target(self, file_name: Optional[str], bucket: Optional[str]) -> StorageTarget:
        return StorageTarget.resolve(file_name, bucket, self.default_bucket)

    # -----------------------------
    # Upload / Download
    # -----------------------------

    def upload(
        self,
        file_name: Optional[str],
        data: bytes,
        content_type: Optional[str] = None,
        bucket: Optional[str] = None,
    ) -> StorageTarget:
        if not data:
            raise InvalidInput("File is empty")
        target = self._target(file_name, bucket)

        with _storage_errors(f"upload {target}"):
            ensure_bucket(self.store, target.bucket)
            self.store.put_object(
                target.bucket,
                target.key,
                io.BytesIO(data),
                len(data),
                content_type=content_type or DEFAULT_CONTENT_TYPE,
            )

        log.info("Uploaded %s (%d bytes)", target, len(data))
        return target

    def download(self, file_name: Optional[str], bucket: Optional[str] = None) -> Tuple[StorageTarget, bytes]:
        target = self._target(file_name, bucket)

        with _storage_errors(f"download {target}"):
            exists = self.store.bucket_exists(target.bucket)
        if not exists:
            raise NotFound(f"Bucket '{target.bucket}' does not exist")

        missing = f"File '{target.key}' not found in bucket '{target.bucket}'"
        with _storage_errors(f"download {target}", not_found=missing):
            self.store.stat_object(target.bucket, target.key)
            data = self.store.get_object(target.bucket, target.key)

        return target, data

    # -----------------------------
    # Listing
    # -----------------------------

    def list_contents(self, prefix: Optional[str] = None) -> List[BucketListing]:
        """
        Every bucket with every object key under prefix (recursive).

        Each bucket's keys are pulled to completion before its listing is
        built; a fault anywhere discards everything collected so far.
        """
        prefix = prefix or ""
        result: List[BucketListing] = []

        with _storage_errors("list"):
            for b in self.store.list_buckets():
                keys = list(self.store.list_objects(b.name, prefix=prefix))
                result.append(BucketListing(bucket=b.name, created=b.created, objects=keys))

        return result

    # -----------------------------
    # Delete
    # -----------------------------

    def delete(self, file_name: Optional[str], bucket: Optional[str] = None) -> StorageTarget:
        # No existence check: removing a missing object is a successful no-op
        target = self._target(file_name, bucket)
        with _storage_errors(f"delete {target}"):
            try:
                self.store.remove_object(target.bucket, target.key)
            except ObjectNotFoundError:
                return target
        log.info("Deleted %s", target)
        return target

    def bulk_delete(self, file_names: Optional[List[str]], bucket: Optional[str] = None) -> BulkDeleteResult:
        if not file_names:
            raise InvalidInput("No files provided")
        b = resolve_bucket(bucket, self.default_bucket)
        keys = [safe_object_name(n) for n in file_names]

        with _storage_errors(f"bulk delete {b}"):
            failures = self.store.remove_objects(b, keys)

        failed = [f for f in failures if f.code not in _MISSING_CODES]
        if failed:
            names = ", ".join(f"{f.key} ({f.code})" for f in failed)
            log.warning("Bulk delete in %s: %d of %d failed", b, len(failed), len(keys))
            raise BackendError(f"Failed to delete {len(failed)} of {len(keys)} files: {names}")

        log.info("Bulk deleted %d objects from %s", len(keys), b)
        return BulkDeleteResult(bucket=b, count=len(file_names))

    # -----------------------------
    # Copy / Move
    # -----------------------------

    def copy(
        self,
        source: Optional[str],
        destination: Optional[str],
        source_bucket: Optional[str] = None,
        destination_bucket: Optional[str] = None,
        cut: bool = False,
    ) -> CopyResult:
        src = self._target(source, source_bucket)
        dst = self._target(destination, destination_bucket)

        missing = f"Source file '{src.key}' not found in bucket '{src.bucket}'"
        with _storage_errors(f"copy {src}", not_found=missing):
            self.store.stat_object(src.bucket, src.key)

        # A failed copy raises here, before the source is ever touched
        with _storage_errors(f"copy {src} -> {dst}"):
            self.store.copy_object(src.bucket, src.key, dst.bucket, dst.key)

        if cut:
            with _storage_errors(f"remove moved source {src}"):
                self.store.remove_object(src.bucket, src.key)

        log.info("%s %s -> %s", "Moved" if cut else "Copied", src, dst)
        return CopyResult(source=src, destination=dst, moved=bool(cut))

    # -----------------------------
    # Presigned URLs
    # -----------------------------

    def presigned_get(self, file_name: Optional[str], bucket: Optional[str] = None) -> PresignedGrant:
        target = self._target(file_name, bucket)
        with _storage_errors(f"presign get {target}"):
            url = self.store.presigned_get_object(target.bucket, target.key, PRESIGN_EXPIRY)
        return PresignedGrant(url=url, target=target)

    def presigned_put(self, file_name: Optional[str], bucket: Optional[str] = None) -> PresignedGrant:
        target = self._target(file_name, bucket)
        with _storage_errors(f"presign put {target}"):
            ensure_bucket(self.store, target.bucket)
            url = self.store.presigned_put_object(target.bucket, target.key, PRESIGN_EXPIRY)
        return PresignedGrant(url=url, target=target)

    # -----------------------------
    # Metadata / Tags
    # -----------------------------

    def info(self, file_name: Optional[str], bucket: Optional[str] = None) -> ObjectMetadata:
        target = self._target(file_name, bucket)
        missing = f"File '{target.key}' not found in bucket '{target.bucket}'"

        with _storage_errors(f"info {target}", not_found=missing):
            stat = self.store.stat_object(target.bucket, target.key)
            tags = self.store.get_object_tags(target.bucket, target.key)

        return ObjectMetadata(
            target=target,
            size=stat.size,
            content_type=stat.content_type,
            last_modified=stat.last_modified,
            metadata=dict(stat.metadata),
            tags=dict(tags),
        )

    def set_tags(
        self,
        file_name: Optional[str],
        tags: Optional[Dict[str, str]],
        bucket: Optional[str] = None,
    ) -> Tuple[StorageTarget, Dict[str, str]]:
        if tags is None:
            raise InvalidInput("Tags cannot be null")
        target = self._target(file_name, bucket)

        # Full replacement; the backend enforces the per-object tag cap
        with _storage_errors(f"set tags {target}"):
            self.store.set_object_tags(target.bucket, target.key, dict(tags))

        return target, dict(tags)
