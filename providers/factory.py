from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from core.settings import Settings, StorageSettings, get_settings
from providers.impl.storage_s3 import S3ObjectStore
from providers.impl.transfer_ftp import FtpTransferClient
from providers.storage import ObjectStoreClient
from providers.transfer import TransferClient


TransferFactory = Callable[[], TransferClient]


@dataclass(frozen=True)
class Providers:
    """
    Central container for providers.

    Lifecycle: built once at startup, attached to app.state, reused for the
    process lifetime. The object store client is shared; transfer clients are
    stateful connections, so the container holds a factory instead.
    """
    settings: Settings
    storage: ObjectStoreClient
    transfer_factory: TransferFactory


def build_storage(settings: StorageSettings) -> ObjectStoreClient:
    return S3ObjectStore.from_settings(settings)


def build_providers(settings: Settings) -> Providers:
    ftp_settings = settings.ftp
    return Providers(
        settings=settings,
        storage=build_storage(settings.storage),
        transfer_factory=lambda: FtpTransferClient.from_settings(ftp_settings),
    )


_cached: Optional[Providers] = None


def get_providers() -> Providers:
    global _cached
    if _cached is None:
        _cached = build_providers(get_settings())
    return _cached
