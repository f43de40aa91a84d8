from __future__ import annotations

from typing import Protocol, runtime_checkable


class TransferError(RuntimeError):
    """Any fault signaled by the legacy file-transfer backend."""


@runtime_checkable
class TransferClient(Protocol):
    """
    Legacy file-transfer abstraction (FTP).

    Operates on local file paths, not streams. A client is connected once per
    benchmark run and closed when the run leaves the transfer phase.
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def upload_file(self, local_path: str, remote_path: str) -> None: ...

    def download_file(self, local_path: str, remote_path: str) -> int:
        """Overwrite local_path with the remote file. Returns bytes written."""
        ...
