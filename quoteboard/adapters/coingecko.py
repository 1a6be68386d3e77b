from __future__ import annotations

import logging

from quoteboard.adapters.base import QuoteErr, QuoteOk, QuoteProvider, QuoteResult
from quoteboard.core.coingecko_client import CoinGeckoClient
from quoteboard.shared.errors import ProviderError

logger = logging.getLogger(__name__)


class CoinGeckoSpotProvider(QuoteProvider):
    name = "coingecko"

    def __init__(self, gecko: CoinGeckoClient, vs_currency: str = "usd") -> None:
        self.gecko = gecko
        self.vs_currency = vs_currency

    async def get_price(
        self, symbol: str, credential: str | None = None, quote_currency: str | None = None
    ) -> QuoteResult:
        vs = (quote_currency or self.vs_currency).lower()
        try:
            row = await self.gecko.get_spot_price(symbol, vs)
        except ProviderError as exc:
            logger.warning("CoinGecko spot price failed for %s/%s: %s", symbol, vs, exc)
            return QuoteErr.from_error(symbol, exc)
        return QuoteOk(
            symbol=symbol,
            price=float(row["price"]),
            currency=vs.upper(),
            stale=bool(row.get("stale")),
        )

    async def close(self) -> None:
        await self.gecko.close()
