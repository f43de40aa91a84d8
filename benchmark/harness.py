from __future__ import annotations

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterable, List, Optional, Protocol, runtime_checkable

from benchmark.targets import LegacyTransferTarget, ObjectStoreTarget
from core.errors import GatewayError, InvalidInput, UnexpectedError
from core.settings import BenchmarkSettings
from gateway.naming import safe_object_name
from providers.storage import ObjectStoreClient
from providers.transfer import TransferClient

log = logging.getLogger(__name__)

# Single reusable download target for the legacy phase. Concurrent runs on one
# host share it; that collision is accepted.
LEGACY_DOWNLOAD_NAME = "ftp_download.tmp"


# ---------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------

@dataclass
class PhaseStats:
    successful: int = 0
    failed: int = 0
    elapsed: float = 0.0  # seconds, loop only


@dataclass(frozen=True)
class TargetResult:
    label: str
    upload: PhaseStats
    download: PhaseStats


@dataclass(frozen=True)
class BenchmarkReport:
    payload_name: str
    payload_size: int
    iterations: int
    legacy: TargetResult
    object_store: TargetResult


# ---------------------------------------------------------------------
# Target capability
# ---------------------------------------------------------------------

@runtime_checkable
class BenchmarkTarget(Protocol):
    """
    One backend under test.

    open() performs the fatal setup (connect, provision) and teardown; it is
    never inside the timed loops. put/get are single attempts and may raise
    anything; the harness tallies those instead of aborting.
    """

    label: str

    def open(self) -> ContextManager[None]: ...

    def names(self, iterations: int) -> List[str]: ...

    def put(self, name: str, payload: bytes) -> None: ...

    def get(self, name: str) -> int: ...


def run_phase(label: str, operation: str, attempt: Callable[[str], object], names: Iterable[str]) -> PhaseStats:
    """
    Run one attempt per name, timing exactly the loop.

    A failing attempt is logged and counted; the loop always runs to the end.
    """
    stats = PhaseStats()
    started = time.perf_counter()
    for name in names:
        try:
            attempt(name)
        except Exception:
            stats.failed += 1
            log.error("%s %s failed: %s", label, operation, name, exc_info=True)
        else:
            stats.successful += 1
            log.debug("%s %s successful: %s", label, operation, name)
    stats.elapsed = time.perf_counter() - started

    log.info(
        "%s %s completed: %d successful, %d failed in %.3fs",
        label, operation, stats.successful, stats.failed, stats.elapsed,
    )
    return stats


def run_target(target: BenchmarkTarget, payload: bytes, iterations: int) -> TargetResult:
    """Upload phase, then download phase of the same names, inside one open() session."""
    names = target.names(iterations)
    with target.open():
        upload = run_phase(target.label, "upload", lambda n: target.put(n, payload), names)
        download = run_phase(target.label, "download", target.get, names)
    return TargetResult(label=target.label, upload=upload, download=download)


# ---------------------------------------------------------------------
# Scratch files
# ---------------------------------------------------------------------

def write_scratch(payload: bytes, suffix: str = "") -> str:
    """Persist the payload once; the legacy client only works with file paths."""
    try:
        fd, path = tempfile.mkstemp(prefix="bench_", suffix=suffix)
    except OSError as e:
        raise UnexpectedError(f"Failed to create temporary file: {e}") from e

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
    except OSError as e:
        remove_scratch([path])
        raise UnexpectedError(f"Failed to create temporary file: {e}") from e

    log.info("Temporary file created: %s", path)
    return path


def remove_scratch(paths: Iterable[Optional[str]]) -> None:
    """Best effort: a cleanup failure is logged, never raised."""
    for path in paths:
        if not path:
            continue
        try:
            if os.path.exists(path):
                os.remove(path)
                log.info("Temporary file deleted: %s", path)
        except OSError:
            log.warning("Failed to delete temporary file: %s", path, exc_info=True)


# ---------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------

class BenchmarkHarness:
    """
    Drives the legacy transfer backend and the object store through the same
    payload, `settings.iterations` uploads then downloads each.

    Fatal faults (scratch file, connect, bucket provisioning) abort the run;
    per-attempt faults are only counted. Scratch files are removed on every
    exit path.
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        transfer_factory: Callable[[], TransferClient],
        settings: BenchmarkSettings,
    ) -> None:
        self.store = store
        self.transfer_factory = transfer_factory
        self.settings = settings

    def run(self, payload: bytes, file_name: Optional[str], content_type: Optional[str] = None) -> BenchmarkReport:
        if not payload:
            raise InvalidInput("No file provided.")
        name = safe_object_name(file_name)
        iterations = self.settings.iterations
        log.info("Starting benchmark for file: %s (%d bytes, %d iterations)", name, len(payload), iterations)

        scratch_path: Optional[str] = None
        download_path = os.path.join(tempfile.gettempdir(), LEGACY_DOWNLOAD_NAME)
        try:
            scratch_path = write_scratch(payload, suffix=os.path.splitext(name)[1])

            legacy = LegacyTransferTarget(
                client_factory=self.transfer_factory,
                source_path=scratch_path,
                download_path=download_path,
                file_name=name,
                remote_dir=self.settings.ftp_remote_dir,
            )
            store = ObjectStoreTarget(
                store=self.store,
                bucket=self.settings.bucket,
                file_name=name,
                content_type=content_type,
            )

            legacy_result = run_target(legacy, payload, iterations)
            store_result = run_target(store, payload, iterations)
        except GatewayError:
            raise
        except Exception as e:
            log.exception("Benchmark aborted")
            raise UnexpectedError(f"Benchmark failed: {e}") from e
        finally:
            remove_scratch([scratch_path, download_path])

        report = BenchmarkReport(
            payload_name=name,
            payload_size=len(payload),
            iterations=iterations,
            legacy=legacy_result,
            object_store=store_result,
        )
        log.info("Benchmark completed for %s", name)
        return report
