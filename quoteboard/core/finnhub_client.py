from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from quoteboard.shared.errors import UpstreamRejected, UpstreamTimeout

logger = logging.getLogger(__name__)


class FinnhubClient:
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(self, api_key: str = "", base_url: Optional[str] = None, timeout: float = 6.0):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = None

    async def initialize(self):
        if self.client:
            return

        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            trust_env=False,
            follow_redirects=True,
        )

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.api_key:
            raise UpstreamRejected("Finnhub API key is not configured")

        if not self.client:
            await self.initialize()

        p = dict(params or {})
        p["token"] = self.api_key

        try:
            response = await self.client.get(f"{self.base_url}{endpoint}", params=p)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Finnhub timeout on {endpoint}")
            raise UpstreamTimeout(f"Finnhub {endpoint} timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (403, 429):
                logger.warning(f"Finnhub Limit/Error: HTTP {status}")
            raise UpstreamRejected(f"Finnhub {endpoint} returned HTTP {status}", status_code=status) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Finnhub Request Error: {e}")
            raise UpstreamRejected(f"Finnhub {endpoint} failed: {e}") from e

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        # {"c": current, "pc": previous close, "d": change, "dp": change %, "t": epoch}
        return await self._get("/quote", {"symbol": symbol.strip().upper()})
