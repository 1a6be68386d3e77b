from __future__ import annotations

from quoteboard.shared.errors import (
    ErrorKind,
    NoProviderAvailable,
    ProviderError,
    ShapeValidationFailed,
    UpstreamRejected,
    UpstreamTimeout,
)
from quoteboard.shared.rate_limiter import RequestPacer

__all__ = [
    "ErrorKind",
    "NoProviderAvailable",
    "ProviderError",
    "ShapeValidationFailed",
    "UpstreamRejected",
    "UpstreamTimeout",
    "RequestPacer",
]
