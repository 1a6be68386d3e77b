from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Union

from quoteboard.shared.errors import ErrorKind, ProviderError, UpstreamRejected

Source = Literal["live", "fallback"]


class Market(str, Enum):
    INDIAN_STOCKS = "indian_stocks"
    CRYPTO = "crypto"
    US_STOCKS = "us_stocks"


@dataclass(frozen=True)
class Instrument:
    key: str
    display_name: str
    upstream_symbol: str
    color: str
    quote_currency: str | None = None


@dataclass(frozen=True)
class PricePoint:
    timestamp: datetime
    price: float
    source: Source = "live"


@dataclass(frozen=True)
class Quote:
    last_price: float = 0.0
    reference_price: float = 0.0
    change: float = 0.0
    change_pct: float = 0.0
    source: Source | None = None
    ts: datetime | None = None

    @property
    def has_data(self) -> bool:
        return self.source is not None and self.last_price > 0


@dataclass(frozen=True)
class QuoteOk:
    symbol: str
    price: float
    reference_price: float | None = None
    currency: str | None = None
    stale: bool = False


@dataclass(frozen=True)
class QuoteErr:
    symbol: str
    kind: ErrorKind
    detail: str = ""
    status_code: int | None = None

    @classmethod
    def from_error(cls, symbol: str, exc: ProviderError) -> QuoteErr:
        status = exc.status_code if isinstance(exc, UpstreamRejected) else None
        return cls(symbol=symbol, kind=exc.kind, detail=str(exc), status_code=status)


QuoteResult = Union[QuoteOk, QuoteErr]


class QuoteProvider(ABC):
    """One upstream price source, answering with a tagged result, never raising."""

    name: str = "provider"

    @abstractmethod
    async def get_price(
        self, symbol: str, credential: str | None = None, quote_currency: str | None = None
    ) -> QuoteResult: ...

    async def close(self) -> None:
        return None
