from __future__ import annotations

import ftplib
import logging
import posixpath
from typing import Optional, Set

from core.settings import FtpSettings
from providers.transfer import TransferClient, TransferError

log = logging.getLogger(__name__)


class FtpTransferClient(TransferClient):
    """
    ftplib-backed TransferClient.

    - Binary mode for every transfer.
    - Uploads overwrite existing remote files and create missing remote
      directories (each directory is created at most once per connection).
    """

    def __init__(
        self,
        host: str,
        port: int = 21,
        user: str = "anonymous",
        password: str = "",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout_seconds = timeout_seconds
        self._ftp: Optional[ftplib.FTP] = None
        self._known_dirs: Set[str] = set()

    @classmethod
    def from_settings(cls, settings: FtpSettings) -> "FtpTransferClient":
        return cls(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            timeout_seconds=settings.timeout_seconds,
        )

    def _conn(self) -> ftplib.FTP:
        if self._ftp is None:
            raise TransferError("FTP client is not connected")
        return self._ftp

    def connect(self) -> None:
        ftp = ftplib.FTP()
        try:
            ftp.connect(self.host, self.port, timeout=self.timeout_seconds)
            ftp.login(self.user, self.password)
        except ftplib.all_errors as e:
            ftp.close()
            raise TransferError(f"FTP connect to {self.host}:{self.port} failed: {e}") from e
        self._ftp = ftp
        self._known_dirs.clear()
        log.info("FTP connected to %s:%s as %s", self.host, self.port, self.user)

    def close(self) -> None:
        ftp, self._ftp = self._ftp, None
        if ftp is None:
            return
        try:
            ftp.quit()
        except ftplib.all_errors:
            # server already gone; drop the socket
            ftp.close()

    def _ensure_remote_dir(self, remote_dir: str) -> None:
        if not remote_dir or remote_dir == "/" or remote_dir in self._known_dirs:
            return
        ftp = self._conn()
        current = ""
        for part in [p for p in remote_dir.split("/") if p]:
            current = f"{current}/{part}"
            if current in self._known_dirs:
                continue
            try:
                ftp.mkd(current)
            except ftplib.error_perm:
                # 550: already exists (or no permission; the STOR will tell)
                pass
            self._known_dirs.add(current)

    def upload_file(self, local_path: str, remote_path: str) -> None:
        ftp = self._conn()
        try:
            self._ensure_remote_dir(posixpath.dirname(remote_path))
            with open(local_path, "rb") as fh:
                ftp.storbinary(f"STOR {remote_path}", fh)
        except ftplib.all_errors as e:
            raise TransferError(f"FTP upload {remote_path} failed: {e}") from e

    def download_file(self, local_path: str, remote_path: str) -> int:
        ftp = self._conn()
        written = 0
        try:
            with open(local_path, "wb") as fh:
                def _sink(chunk: bytes) -> None:
                    nonlocal written
                    fh.write(chunk)
                    written += len(chunk)

                ftp.retrbinary(f"RETR {remote_path}", _sink)
        except ftplib.all_errors as e:
            raise TransferError(f"FTP download {remote_path} failed: {e}") from e
        return written
