from __future__ import annotations

import logging
from typing import Optional

from core.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging once at startup.

    LOG_LEVEL drives the level; unknown names fall back to INFO. The boto3 and
    urllib3 loggers are kept at WARNING so per-request debug logs
    from the benchmark loops stay readable.
    """
    name = (level or get_settings().log_level or "INFO").upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)

    for noisy in ("urllib3", "botocore", "boto3"):
        logging.getLogger(noisy).setLevel(max(resolved, logging.WARNING))
