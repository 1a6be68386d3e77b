"""Provider error taxonomy for quote fetches.

Clients raise these; adapters translate them into ``QuoteErr`` values so the
fetch scheduler can route an instrument to fallback (or leave it empty)
without inspecting raw payloads or exception text.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NO_PROVIDER = "no_provider"
    UPSTREAM_REJECTED = "upstream_rejected"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    SHAPE_VALIDATION_FAILED = "shape_validation_failed"


class ProviderError(Exception):
    """Base provider error (do not raise directly)."""

    kind: ErrorKind = ErrorKind.UPSTREAM_REJECTED


class NoProviderAvailable(ProviderError):
    """Policy forbids fetching this instrument (e.g. missing login)."""

    kind = ErrorKind.NO_PROVIDER


class UpstreamRejected(ProviderError):
    """Non-success status or unusable body from the upstream API."""

    kind = ErrorKind.UPSTREAM_REJECTED

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeout(ProviderError):
    """Upstream call exceeded the configured timeout."""

    kind = ErrorKind.UPSTREAM_TIMEOUT


class ShapeValidationFailed(ProviderError):
    """Payload parsed but lacked the expected numeric price field."""

    kind = ErrorKind.SHAPE_VALIDATION_FAILED


__all__ = [
    "ErrorKind",
    "ProviderError",
    "NoProviderAvailable",
    "UpstreamRejected",
    "UpstreamTimeout",
    "ShapeValidationFailed",
]
