from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def _split_csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _strip_scheme(endpoint: str) -> str:
    # SDK clients expect "host:port" (no scheme)
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    return endpoint.rstrip("/")


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StorageSettings:
    """
    Object store configuration (MinIO or any other S3-compatible endpoint).

    endpoint is "host:port" without a scheme; `secure` picks http or https.
    """
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    secure: bool = False
    region: Optional[str] = None

    @property
    def endpoint_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"


@dataclass(frozen=True)
class FtpSettings:
    host: str = "127.0.0.1"
    port: int = 21
    user: str = "anonymous"
    password: str = ""
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class BenchmarkSettings:
    iterations: int = 1000
    bucket: str = "benchmark-bucket"
    ftp_remote_dir: str = "/Files"


@dataclass(frozen=True)
class Settings:
    storage: StorageSettings
    ftp: FtpSettings
    benchmark: BenchmarkSettings
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _load_storage_settings() -> StorageSettings:
    raw_endpoint = (_env("MINIO_ENDPOINT", "") or "localhost:9000").strip()

    # An explicit https:// scheme implies TLS unless MINIO_USE_SSL says otherwise
    secure_default = raw_endpoint.lower().startswith("https://")
    secure = _env_bool("MINIO_USE_SSL", secure_default)

    endpoint = _strip_scheme(raw_endpoint)
    if not endpoint:
        raise RuntimeError("MINIO_ENDPOINT is empty or invalid")

    region = (_env("MINIO_REGION", "") or "").strip() or None

    return StorageSettings(
        endpoint=endpoint,
        access_key=(_env("MINIO_ACCESS_KEY", "") or "minioadmin").strip(),
        secret_key=(_env("MINIO_SECRET_KEY", "") or "minioadmin").strip(),
        bucket=(_env("MINIO_BUCKET", "") or "files").strip(),
        secure=secure,
        region=region,
    )


def _load_ftp_settings() -> FtpSettings:
    port = _env_int("FTP_PORT", 21)
    if port <= 0:
        port = 21

    return FtpSettings(
        host=(_env("FTP_HOST", "") or "127.0.0.1").strip(),
        port=port,
        user=(_env("FTP_USER", "") or "anonymous").strip(),
        password=_env("FTP_PASSWORD", ""),
        timeout_seconds=max(1.0, _env_float("FTP_TIMEOUT_SECONDS", 30.0)),
    )


def _load_benchmark_settings() -> BenchmarkSettings:
    remote_dir = (_env("BENCHMARK_FTP_DIR", "") or "/Files").strip().rstrip("/")
    if not remote_dir.startswith("/"):
        remote_dir = "/" + remote_dir

    return BenchmarkSettings(
        iterations=max(1, _env_int("BENCHMARK_ITERATIONS", 1000)),
        bucket=(_env("BENCHMARK_BUCKET", "") or "benchmark-bucket").strip(),
        ftp_remote_dir=remote_dir,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        storage=_load_storage_settings(),
        ftp=_load_ftp_settings(),
        benchmark=_load_benchmark_settings(),
        log_level=(_env("LOG_LEVEL", "") or "INFO").strip().upper(),
        cors_origins=_split_csv(_env("CORS_ORIGINS", "*")) or ["*"],
    )
