from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quoteboard.adapters.base import QuoteErr, QuoteOk, QuoteProvider, QuoteResult
from quoteboard.core.kite_client import KiteClient
from quoteboard.shared.errors import ErrorKind, ProviderError, ShapeValidationFailed

logger = logging.getLogger(__name__)

Price = Annotated[float, Field(strict=True, allow_inf_nan=False)]


class KiteLtpRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    last_price: Price
    instrument_token: int | None = None


def parse_ltp(payload: Any, symbol: str) -> KiteLtpRow:
    """Pick the row for ``symbol`` out of an LTP payload, or the first row."""
    data = payload.get("data", payload) if isinstance(payload, dict) else None
    if not isinstance(data, dict) or not data:
        raise ShapeValidationFailed(f"Kite LTP payload for {symbol} is empty")
    row = data.get(symbol)
    if row is None:
        row = next(iter(data.values()))
    try:
        return KiteLtpRow.model_validate(row)
    except ValidationError as exc:
        raise ShapeValidationFailed(f"Kite LTP row for {symbol} has no numeric last_price") from exc


class KiteLtpProvider(QuoteProvider):
    name = "kite"

    def __init__(self, kite: KiteClient) -> None:
        self.kite = kite

    async def get_price(
        self, symbol: str, credential: str | None = None, quote_currency: str | None = None
    ) -> QuoteResult:
        token = (credential or "").strip()
        if not token:
            return QuoteErr(symbol=symbol, kind=ErrorKind.NO_PROVIDER, detail="Kite login required")
        try:
            payload = await self.kite.get_ltp(token, [symbol])
            row = parse_ltp(payload, symbol)
        except ProviderError as exc:
            logger.warning("Kite LTP failed for %s: %s", symbol, exc)
            return QuoteErr.from_error(symbol, exc)
        return QuoteOk(symbol=symbol, price=row.last_price, currency="INR")

    async def close(self) -> None:
        await self.kite.close()
