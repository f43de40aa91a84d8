# health/router.py
from fastapi import APIRouter

from core.deps import StorageDep
from providers.storage import StorageError

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # Keep this super simple and always unauthenticated
    return {"ok": True}


@router.get("/health/storage")
def health_storage(storage: StorageDep):
    """
    Verifies the object store is reachable with the configured credentials.
    """
    try:
        buckets = storage.list_buckets()
    except StorageError as e:
        return {
            "ok": False,
            "storageReachable": False,
            "error": str(e),
        }

    return {
        "ok": True,
        "storageReachable": True,
        "bucketCount": len(buckets),
    }
