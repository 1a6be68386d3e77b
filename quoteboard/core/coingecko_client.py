from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from quoteboard.shared.errors import ShapeValidationFailed, UpstreamRejected, UpstreamTimeout

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    """CoinGecko simple-price lookups with a short in-memory cache.

    A cached price younger than ``cache_ttl`` is returned without a request.
    When the upstream call fails and an older cached price exists, that price
    is served with ``stale=True`` instead of raising.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 6.0,
        cache_ttl: float = 20.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[float, float]] = {}  # "id:vs" -> (fetched_at, price)
        self.client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        if self.client:
            return

        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            trust_env=False,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _fetch_price(self, coin_id: str, vs: str) -> float:
        if not self.client:
            await self.initialize()
        try:
            response = await self.client.get(
                f"{self.base_url}/simple/price",
                params={"ids": coin_id, "vs_currencies": vs},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"CoinGecko price for {coin_id} timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamRejected(f"CoinGecko returned HTTP {status}", status_code=status) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamRejected(f"CoinGecko request failed: {exc}") from exc

        row = data.get(coin_id) if isinstance(data, dict) else None
        price = row.get(vs) if isinstance(row, dict) else None
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
            raise ShapeValidationFailed(f"Price not found for {coin_id}/{vs}")
        return float(price)

    async def get_spot_price(self, coin_id: str, vs: str = "usd") -> Dict[str, Any]:
        coin = coin_id.strip()
        vs = (vs or "usd").strip().lower()
        if not coin:
            raise UpstreamRejected("Missing coin id")

        cache_key = f"{coin}:{vs}"
        now = self._clock()
        cached = self._cache.get(cache_key)
        if cached and now - cached[0] < self.cache_ttl:
            return {"symbol": coin, "currency": vs, "price": cached[1], "cached": True, "stale": False}

        try:
            price = await self._fetch_price(coin, vs)
        except (UpstreamRejected, UpstreamTimeout) as exc:
            if cached:
                logger.warning("CoinGecko failed for %s (%s), serving cached price", cache_key, exc)
                return {"symbol": coin, "currency": vs, "price": cached[1], "cached": True, "stale": True}
            raise

        self._cache[cache_key] = (now, price)
        return {"symbol": coin, "currency": vs, "price": price, "cached": False, "stale": False}
