from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from quoteboard.shared.errors import UpstreamRejected, UpstreamTimeout

logger = logging.getLogger(__name__)


class KiteClient:
    API_BASE_URL = "https://api.kite.trade"

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        timeout: float = 6.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or self.API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        if self.client:
            return

        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            trust_env=False,
            follow_redirects=True,
            headers={"X-Kite-Version": "3"},
        )

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    def _auth_headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"token {self.api_key}:{access_token}"}

    async def _get(
        self,
        endpoint: str,
        access_token: str,
        params: Optional[Any] = None,
    ) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamRejected("Kite API key is not configured")
        if not self.client:
            await self.initialize()

        try:
            response = await self.client.get(
                f"{self.base_url}{endpoint}",
                params=params or {},
                headers=self._auth_headers(access_token),
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            logger.warning("Kite GET timed out for %s", endpoint)
            raise UpstreamTimeout(f"Kite {endpoint} timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Kite GET %s returned HTTP %s", endpoint, status)
            raise UpstreamRejected(f"Kite {endpoint} returned HTTP {status}", status_code=status) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Kite GET failed for %s: %s", endpoint, exc)
            raise UpstreamRejected(f"Kite {endpoint} failed: {exc}") from exc

    async def get_ltp(self, access_token: str, instruments: list[str]) -> Dict[str, Any]:
        """Last traded price for ``exchange:tradingsymbol`` names or instrument tokens."""
        params = [("i", ins.strip()) for ins in instruments if ins.strip()]
        if not params:
            return {}
        return await self._get("/quote/ltp", access_token, params=params)
