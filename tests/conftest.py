from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import pytest

from core.settings import BenchmarkSettings, FtpSettings, Settings, StorageSettings
from providers.factory import Providers
from providers.storage import (
    BucketAlreadyExistsError,
    BucketInfo,
    BucketNotFoundError,
    DeleteFailure,
    ObjectNotFoundError,
    ObjectStat,
    StorageError,
)
from providers.transfer import TransferError


class FakeObjectStore:
    """
    In-memory ObjectStoreClient.

    Failure injection:
      - fail_ops[op] = exc        -> every call to `op` raises exc
      - put_fail_names / get_fail_names -> single keys fail on put / get
      - delete_failures[key] = code -> remove_objects reports that key
      - list_fail_after[bucket] = n -> list_objects raises after n keys
    """

    def __init__(self) -> None:
        self.buckets: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.created: Dict[str, datetime] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_ops: Dict[str, Exception] = {}
        self.put_fail_names: Set[str] = set()
        self.get_fail_names: Set[str] = set()
        self.delete_failures: Dict[str, str] = {}
        self.list_fail_after: Dict[str, int] = {}

    def _call(self, op: str, *args: Any) -> None:
        self.calls.append((op, args))
        if op in self.fail_ops:
            raise self.fail_ops[op]

    def _bucket(self, bucket: str) -> Dict[str, Dict[str, Any]]:
        if bucket not in self.buckets:
            raise BucketNotFoundError(f"bucket {bucket} missing", code="NoSuchBucket")
        return self.buckets[bucket]

    def _object(self, bucket: str, key: str) -> Dict[str, Any]:
        objs = self._bucket(bucket)
        if key not in objs:
            raise ObjectNotFoundError(f"{bucket}/{key} missing", code="NoSuchKey")
        return objs[key]

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    # buckets
    def bucket_exists(self, bucket: str) -> bool:
        self._call("bucket_exists", bucket)
        return bucket in self.buckets

    def make_bucket(self, bucket: str) -> None:
        self._call("make_bucket", bucket)
        if bucket in self.buckets:
            raise BucketAlreadyExistsError(f"bucket {bucket} exists", code="BucketAlreadyOwnedByYou")
        self.buckets[bucket] = {}
        self.created[bucket] = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def list_buckets(self) -> List[BucketInfo]:
        self._call("list_buckets")
        return [BucketInfo(name=b, created=self.created.get(b)) for b in sorted(self.buckets)]

    # objects
    def stat_object(self, bucket: str, key: str) -> ObjectStat:
        self._call("stat_object", bucket, key)
        obj = self._object(bucket, key)
        return ObjectStat(
            bucket=bucket,
            key=key,
            size=len(obj["data"]),
            content_type=obj["content_type"],
            last_modified=obj["last_modified"],
            metadata=dict(obj["metadata"]),
        )

    def put_object(self, bucket, key, data, length, content_type="application/octet-stream", metadata=None) -> None:
        self._call("put_object", bucket, key)
        if key in self.put_fail_names:
            raise StorageError(f"injected put failure for {key}")
        objs = self._bucket(bucket)
        objs[key] = {
            "data": data.read(length),
            "content_type": content_type,
            "metadata": dict(metadata or {}),
            "tags": {},
            "last_modified": datetime(2024, 1, 2, tzinfo=timezone.utc),
        }

    def get_object(self, bucket: str, key: str) -> bytes:
        self._call("get_object", bucket, key)
        if key in self.get_fail_names:
            raise StorageError(f"injected get failure for {key}")
        return self._object(bucket, key)["data"]

    def remove_object(self, bucket: str, key: str) -> None:
        self._call("remove_object", bucket, key)
        # S3 semantics: deleting a missing key succeeds
        self._bucket(bucket).pop(key, None)

    def remove_objects(self, bucket: str, keys: Iterable[str]) -> List[DeleteFailure]:
        keys = list(keys)
        self._call("remove_objects", bucket, tuple(keys))
        objs = self._bucket(bucket)
        failures = []
        for k in keys:
            if k in self.delete_failures:
                failures.append(DeleteFailure(key=k, code=self.delete_failures[k], message="injected"))
                continue
            objs.pop(k, None)
        return failures

    def copy_object(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        self._call("copy_object", src_bucket, src_key, dst_bucket, dst_key)
        obj = self._object(src_bucket, src_key)
        self._bucket(dst_bucket)[dst_key] = {**obj, "tags": dict(obj["tags"])}

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[str]:
        self._call("list_objects", bucket, prefix)
        fail_after = self.list_fail_after.get(bucket)
        for i, key in enumerate(sorted(self._bucket(bucket))):
            if fail_after is not None and i >= fail_after:
                raise StorageError(f"listing {bucket} interrupted")
            if key.startswith(prefix or ""):
                yield key

    # tags
    def get_object_tags(self, bucket: str, key: str) -> Dict[str, str]:
        self._call("get_object_tags", bucket, key)
        return dict(self._object(bucket, key)["tags"])

    def set_object_tags(self, bucket: str, key: str, tags: Dict[str, str]) -> None:
        self._call("set_object_tags", bucket, key)
        if len(tags) > 10:
            raise StorageError("only 10 object tags are allowed")
        self._object(bucket, key)["tags"] = dict(tags)

    # presign
    def presigned_get_object(self, bucket: str, key: str, expires: timedelta) -> str:
        self._call("presigned_get_object", bucket, key)
        return f"http://fake-store/{bucket}/{key}?X-Amz-Expires={int(expires.total_seconds())}"

    def presigned_put_object(self, bucket: str, key: str, expires: timedelta) -> str:
        self._call("presigned_put_object", bucket, key)
        return f"http://fake-store/{bucket}/{key}?X-Amz-Expires={int(expires.total_seconds())}&put=1"

    # test helper
    def seed(self, bucket: str, key: str, data: bytes = b"0123456789", content_type: str = "application/pdf") -> None:
        if bucket not in self.buckets:
            self.buckets[bucket] = {}
            self.created[bucket] = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.buckets[bucket][key] = {
            "data": data,
            "content_type": content_type,
            "metadata": {},
            "tags": {},
            "last_modified": datetime(2024, 1, 2, tzinfo=timezone.utc),
        }


class FakeTransferClient:
    """In-memory TransferClient; remote files live in `remote`."""

    def __init__(self) -> None:
        self.remote: Dict[str, bytes] = {}
        self.connected = False
        self.connect_error: Optional[Exception] = None
        self.upload_fail_paths: Set[str] = set()
        self.download_fail_paths: Set[str] = set()
        self.connects = 0
        self.closes = 0

    def connect(self) -> None:
        self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def close(self) -> None:
        self.closes += 1
        self.connected = False

    def upload_file(self, local_path: str, remote_path: str) -> None:
        if not self.connected:
            raise TransferError("not connected")
        if remote_path in self.upload_fail_paths:
            raise TransferError(f"injected upload failure for {remote_path}")
        with open(local_path, "rb") as fh:
            self.remote[remote_path] = fh.read()

    def download_file(self, local_path: str, remote_path: str) -> int:
        if not self.connected:
            raise TransferError("not connected")
        if remote_path in self.download_fail_paths or remote_path not in self.remote:
            raise TransferError(f"550 {remote_path}: no such file")
        data = self.remote[remote_path]
        with open(local_path, "wb") as fh:
            fh.write(data)
        return len(data)


def make_settings(iterations: int = 1000, bucket: str = "mybucket") -> Settings:
    return Settings(
        storage=StorageSettings(
            endpoint="localhost:9000",
            access_key="test",
            secret_key="test",
            bucket=bucket,
        ),
        ftp=FtpSettings(),
        benchmark=BenchmarkSettings(iterations=iterations),
    )


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def transfer() -> FakeTransferClient:
    return FakeTransferClient()


@pytest.fixture
def scratch_dir(tmp_path, monkeypatch):
    """Point tempfile at a private dir so scratch cleanup can be asserted."""
    import tempfile

    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    return tmp_path


@pytest.fixture
def providers(store, transfer) -> Providers:
    return Providers(
        settings=make_settings(iterations=5),
        storage=store,
        transfer_factory=lambda: transfer,
    )
