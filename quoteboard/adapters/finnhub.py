from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quoteboard.adapters.base import QuoteErr, QuoteOk, QuoteProvider, QuoteResult
from quoteboard.core.finnhub_client import FinnhubClient
from quoteboard.shared.errors import ProviderError, ShapeValidationFailed

logger = logging.getLogger(__name__)

Price = Annotated[float, Field(strict=True, allow_inf_nan=False)]


class FinnhubQuote(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # Finnhub answers unknown tickers with c=0.
    current_price: Price = Field(alias="c", gt=0)
    previous_close: Price | None = Field(default=None, alias="pc")


def parse_quote(payload: Any, symbol: str) -> FinnhubQuote:
    try:
        return FinnhubQuote.model_validate(payload)
    except ValidationError as exc:
        raise ShapeValidationFailed(f"Finnhub quote for {symbol} has no numeric current price") from exc


class FinnhubQuoteProvider(QuoteProvider):
    name = "finnhub"

    def __init__(self, finnhub: FinnhubClient) -> None:
        self.finnhub = finnhub

    async def get_price(
        self, symbol: str, credential: str | None = None, quote_currency: str | None = None
    ) -> QuoteResult:
        # The API key lives on the client; ``credential`` is unused here.
        try:
            quote = parse_quote(await self.finnhub.get_quote(symbol), symbol)
        except ProviderError as exc:
            logger.warning("Finnhub quote failed for %s: %s", symbol, exc)
            return QuoteErr.from_error(symbol, exc)
        reference = quote.previous_close if quote.previous_close and quote.previous_close > 0 else None
        return QuoteOk(symbol=symbol, price=quote.current_price, reference_price=reference, currency="USD")

    async def close(self) -> None:
        await self.finnhub.close()
