from __future__ import annotations

import io
import logging
import os
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from core.errors import BackendError
from gateway.service import DEFAULT_CONTENT_TYPE, ensure_bucket
from providers.storage import ObjectStoreClient, StorageError
from providers.transfer import TransferClient, TransferError

log = logging.getLogger(__name__)


class LegacyTransferTarget:
    """
    FTP side of the benchmark.

    Uploads always send the scratch copy of the payload (the client is
    path-based); downloads overwrite one reusable local file.
    Remote names: {stem}_{i}{ext} under remote_dir, i starting at 1.
    """

    label = "FTP"

    def __init__(
        self,
        client_factory: Callable[[], TransferClient],
        source_path: str,
        download_path: str,
        file_name: str,
        remote_dir: str = "/Files",
    ) -> None:
        self.client_factory = client_factory
        self.source_path = source_path
        self.download_path = download_path
        self.file_name = file_name
        self.remote_dir = remote_dir.rstrip("/")
        self._client: Optional[TransferClient] = None

    def names(self, iterations: int) -> List[str]:
        stem, ext = os.path.splitext(self.file_name)
        return [f"{stem}_{i}{ext}" for i in range(1, iterations + 1)]

    def _remote(self, name: str) -> str:
        return f"{self.remote_dir}/{name}"

    @contextmanager
    def open(self) -> Iterator[None]:
        client = self.client_factory()
        try:
            client.connect()
        except TransferError as e:
            log.error("FTP client operation failed: %s", e)
            raise BackendError(f"FTP operation failed: {e}") from e
        log.info("FTP client connected successfully")

        self._client = client
        try:
            yield
        finally:
            self._client = None
            client.close()

    def _connected(self) -> TransferClient:
        if self._client is None:
            raise TransferError("FTP target used outside open()")
        return self._client

    def put(self, name: str, payload: bytes) -> None:
        self._connected().upload_file(self.source_path, self._remote(name))

    def get(self, name: str) -> int:
        return self._connected().download_file(self.download_path, self._remote(name))


class ObjectStoreTarget:
    """
    Object store side of the benchmark.

    Each upload wraps the same in-memory bytes in a fresh stream; downloads
    land in a throwaway buffer. Object names: {i}_{file_name}, i starting at 1.
    """

    label = "MinIO"

    def __init__(
        self,
        store: ObjectStoreClient,
        bucket: str,
        file_name: str,
        content_type: Optional[str] = None,
    ) -> None:
        self.store = store
        self.bucket = bucket
        self.file_name = file_name
        self.content_type = content_type or DEFAULT_CONTENT_TYPE

    def names(self, iterations: int) -> List[str]:
        return [f"{i}_{self.file_name}" for i in range(1, iterations + 1)]

    @contextmanager
    def open(self) -> Iterator[None]:
        try:
            created = ensure_bucket(self.store, self.bucket)
        except StorageError as e:
            log.error("MinIO client operation failed: %s", e)
            raise BackendError(f"MinIO operation failed: {e}") from e
        log.info("MinIO bucket %s: %s", "created" if created else "already exists", self.bucket)
        yield

    def put(self, name: str, payload: bytes) -> None:
        self.store.put_object(
            self.bucket,
            name,
            io.BytesIO(payload),
            len(payload),
            content_type=self.content_type,
        )

    def get(self, name: str) -> int:
        buf = io.BytesIO()
        buf.write(self.store.get_object(self.bucket, name))
        return buf.tell()
