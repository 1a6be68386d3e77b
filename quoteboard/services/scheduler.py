"""Sequenced, paced quote fetching for the active market.

One pass walks the selected instruments in order. Calls to the same provider
are spaced by that provider's pacing interval, an instrument whose market is
closed and which already has history is skipped, and every failure is
contained to its own instrument (fallback data, or nothing for markets that
require a login).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Literal

from quoteboard.adapters.base import Instrument, Market, PricePoint, QuoteErr, QuoteOk, QuoteResult
from quoteboard.adapters.coingecko import CoinGeckoSpotProvider
from quoteboard.adapters.finnhub import FinnhubQuoteProvider
from quoteboard.adapters.kite import KiteLtpProvider
from quoteboard.adapters.registry import ProviderCall, ProviderSelector
from quoteboard.config.settings import AppSettings, get_settings
from quoteboard.core.coingecko_client import CoinGeckoClient
from quoteboard.core.finnhub_client import FinnhubClient
from quoteboard.core.kite_client import KiteClient
from quoteboard.services.fallback import FallbackGenerator
from quoteboard.services.session import DashboardSession
from quoteboard.shared.errors import ErrorKind
from quoteboard.shared.market_calendar import is_market_open
from quoteboard.shared.rate_limiter import RequestPacer

logger = logging.getLogger(__name__)

FetchStatus = Literal["live", "fallback", "skipped", "unavailable"]

DEFAULT_PACING = {"kite": 0.25, "finnhub": 1.1, "coingecko": 1.1}


@dataclass(frozen=True)
class FetchReport:
    key: str
    status: FetchStatus
    provider: str = "none"
    error: ErrorKind | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FetchScheduler:
    def __init__(
        self,
        session: DashboardSession,
        selector: ProviderSelector,
        fallback: FallbackGenerator | None = None,
        *,
        refresh_interval: float = 60.0,
        request_timeout: float = 6.0,
        pacing: dict[str, float] | None = None,
        max_backoff: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        now: Callable[[], datetime] = _utcnow,
        market_open: Callable[[Market, datetime], bool] = is_market_open,
    ) -> None:
        self.session = session
        self.selector = selector
        self.fallback = fallback or FallbackGenerator()
        self.refresh_interval = refresh_interval
        self.request_timeout = request_timeout
        self._sleep = sleep or asyncio.sleep
        self._now = now
        self._market_open = market_open
        self._pacing = {**DEFAULT_PACING, **(pacing or {})}
        self._max_backoff = max_backoff
        self._pacers: dict[str, RequestPacer] = {}
        self._locks: dict[Market, asyncio.Lock] = {m: asyncio.Lock() for m in Market}
        self._timer: asyncio.Task | None = None
        self.last_refresh_at: datetime | None = None

    # -- guard / timer -----------------------------------------------------------

    def is_refreshing(self, market: Market | str | None = None) -> bool:
        return self._locks[Market(market or self.session.active_market)].locked()

    @property
    def auto_refresh_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start_auto_refresh(self) -> asyncio.Task:
        """Arm the periodic refresh, replacing any timer already running."""
        self._cancel_timer()
        self._timer = asyncio.create_task(self._auto_refresh_loop(), name="quoteboard-auto-refresh")
        return self._timer

    async def stop(self) -> None:
        task = self._timer
        self._timer = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def aclose(self) -> None:
        await self.stop()
        for provider in self.selector.providers():
            await provider.close()

    def _cancel_timer(self) -> None:
        if self._timer and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _auto_refresh_loop(self) -> None:
        while True:
            await self._sleep(self.refresh_interval)
            market = self.session.active_market
            if self.is_refreshing(market):
                logger.debug("Refresh still in flight for %s, skipping tick", market.value)
                continue
            try:
                await self.refresh(market)
            except Exception:
                logger.exception("Auto refresh failed for %s", market.value)

    # -- passes ------------------------------------------------------------------

    async def load_initial(self, market: Market | str | None = None) -> list[FetchReport]:
        m = Market(market or self.session.active_market)
        async with self._locks[m]:
            return await self._run_pass(m, self.session.selected(m).instruments())

    async def refresh(self, market: Market | str | None = None) -> list[FetchReport] | None:
        """Re-fetch the selected set; a no-op (returns None) while another pass holds the guard."""
        m = Market(market or self.session.active_market)
        lock = self._locks[m]
        if lock.locked():
            logger.debug("Refresh already in flight for %s", m.value)
            return None
        async with lock:
            return await self._run_pass(m, self.session.selected(m).instruments())

    async def switch_market(self, market: Market | str) -> list[FetchReport]:
        m = Market(market)
        rearm = self.auto_refresh_running
        self._cancel_timer()
        try:
            self.session.switch_market(m)
            return await self.load_initial(m)
        finally:
            if rearm:
                self.start_auto_refresh()

    async def select(self, slot: int, key: str) -> list[FetchReport]:
        """Reassign a slot and fill the newcomer if it has no history yet."""
        m = self.session.active_market
        selection = self.session.selected(m)
        selection.assign(slot, key)
        pending = [i for i in selection.instruments() if not self.session.history.has_history(i.key)]
        if not pending:
            return []
        rearm = self.auto_refresh_running
        self._cancel_timer()
        try:
            async with self._locks[m]:
                return await self._run_pass(m, pending)
        finally:
            if rearm:
                self.start_auto_refresh()

    async def _run_pass(self, market: Market, instruments: Iterable[Instrument]) -> list[FetchReport]:
        issued: set[str] = set()
        reports = [await self._fetch_one(market, instrument, issued) for instrument in instruments]
        self.last_refresh_at = self._now()
        live = sum(1 for r in reports if r.status == "live")
        logger.info("Pass for %s finished: %d/%d live", market.value, live, len(reports))
        return reports

    # -- one instrument ----------------------------------------------------------

    def _pacer(self, name: str) -> RequestPacer:
        pacer = self._pacers.get(name)
        if pacer is None:
            pacer = RequestPacer(
                name,
                base_interval=self._pacing.get(name, 1.0),
                max_interval=self._max_backoff,
                sleep=self._sleep,
            )
            self._pacers[name] = pacer
        return pacer

    async def _fetch_one(self, market: Market, instrument: Instrument, issued: set[str]) -> FetchReport:
        key = instrument.key
        history = self.session.history
        call = self.selector.provider_for(market, instrument, self.session.auth)

        if not call.available:
            return self._no_provider(market, key)

        if history.has_history(key) and not self._market_open(market, self._now()):
            logger.debug("%s closed, keeping existing history for %s", market.value, key)
            return FetchReport(key=key, status="skipped", provider=call.name)

        pacer = self._pacer(call.name)
        if call.name in issued:
            await pacer.pause()
        issued.add(call.name)

        result = await self._invoke(call)
        if isinstance(result, QuoteOk):
            pacer.on_success()
            history.append(key, PricePoint(timestamp=self._now(), price=result.price, source="live"))
            return FetchReport(key=key, status="live", provider=call.name)

        if result.status_code == 429:
            pacer.on_rate_limit()
        if result.kind is ErrorKind.NO_PROVIDER:
            return self._no_provider(market, key)
        logger.warning("%s failed for %s (%s): %s", call.name, key, result.kind.value, result.detail)
        self._apply_fallback(key)
        return FetchReport(key=key, status="fallback", provider=call.name, error=result.kind)

    async def _invoke(self, call: ProviderCall) -> QuoteResult:
        try:
            return await asyncio.wait_for(
                call.provider.get_price(call.symbol, call.credential, call.quote_currency),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            return QuoteErr(
                symbol=call.symbol,
                kind=ErrorKind.UPSTREAM_TIMEOUT,
                detail=f"no answer within {self.request_timeout:.1f}s",
            )
        except Exception as exc:
            logger.exception("Provider %s raised for %s", call.name, call.symbol)
            return QuoteErr(symbol=call.symbol, kind=ErrorKind.UPSTREAM_REJECTED, detail=str(exc))

    def _no_provider(self, market: Market, key: str) -> FetchReport:
        if self.selector.fallback_on_no_provider(market):
            self._apply_fallback(key)
            return FetchReport(key=key, status="fallback", error=ErrorKind.NO_PROVIDER)
        logger.debug("No provider for %s on %s, leaving it empty", key, market.value)
        return FetchReport(key=key, status="unavailable", error=ErrorKind.NO_PROVIDER)

    def _apply_fallback(self, key: str) -> None:
        points = self.fallback.generate(key, now=self._now())
        self.session.history.replace(key, points)
        logger.info("Using demo data for %s", key)


def build_scheduler(
    settings: AppSettings | None = None,
    kite_access_token: str | None = None,
    market: Market | str = Market.INDIAN_STOCKS,
) -> FetchScheduler:
    """Wire clients, adapters and a fresh session from application settings."""
    cfg = settings or get_settings()
    timeout = cfg.request_timeout_seconds
    selector = ProviderSelector(
        kite=KiteLtpProvider(KiteClient(api_key=cfg.kite_api_key, base_url=cfg.kite_base_url, timeout=timeout)),
        finnhub=FinnhubQuoteProvider(
            FinnhubClient(api_key=cfg.finnhub_api_key, base_url=cfg.finnhub_base_url, timeout=timeout)
        ),
        coingecko=CoinGeckoSpotProvider(
            CoinGeckoClient(base_url=cfg.coingecko_base_url, timeout=timeout, cache_ttl=cfg.crypto_cache_ttl_seconds)
        ),
    )
    session = DashboardSession(active_market=Market(market))
    session.set_kite_token(kite_access_token)
    return FetchScheduler(
        session,
        selector,
        refresh_interval=cfg.refresh_interval_seconds,
        request_timeout=timeout,
        pacing=cfg.pacing_seconds,
        max_backoff=cfg.max_backoff_seconds,
    )
