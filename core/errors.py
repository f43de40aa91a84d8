from __future__ import annotations

from typing import Dict, Optional


class GatewayError(Exception):
    """
    Base for every failure that crosses the gateway / benchmark boundary.

    Each subclass carries the HTTP status it maps to, so main.py can translate
    any of them with a single exception handler.
    """

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(GatewayError):
    """Caller-supplied data failed a precondition (empty payload, empty list, null tags)."""

    status_code = 400


class NotFound(GatewayError):
    """A bucket or object was absent where existence is required."""

    status_code = 404


class BackendError(GatewayError):
    """The storage or transfer backend signaled a fault."""

    status_code = 500


class UnexpectedError(GatewayError):
    """Local faults (scratch files, etc.) and anything not otherwise classified."""

    status_code = 500
