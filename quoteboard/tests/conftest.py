from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest


# Ensure `import quoteboard...` works even when pytest is launched from `quoteboard/`.
REPO_ROOT = Path(__file__).resolve().parents[2]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)

from quoteboard.adapters.base import QuoteErr, QuoteOk, QuoteProvider  # noqa: E402
from quoteboard.shared.errors import ErrorKind  # noqa: E402

# Monday 2026-02-16 04:30 UTC is 10:00 IST: NSE open, US session closed.
MONDAY_MORNING_IST = datetime(2026, 2, 16, 4, 30, tzinfo=timezone.utc)


class FakeProvider(QuoteProvider):
    def __init__(self, name: str, prices: dict[str, float] | None = None, raises: set[str] | None = None):
        self.name = name
        self.prices = dict(prices or {})
        self.raises = set(raises or ())
        self.errors: dict[str, QuoteErr] = {}
        self.calls: list[tuple[str, str | None, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def get_price(self, symbol, credential=None, quote_currency=None):
        self.calls.append((symbol, credential, quote_currency))
        if self.gate is not None:
            await self.gate.wait()
        if symbol in self.raises:
            raise RuntimeError(f"{self.name} exploded on {symbol}")
        if symbol in self.errors:
            return self.errors[symbol]
        if symbol in self.prices:
            return QuoteOk(symbol=symbol, price=self.prices[symbol])
        return QuoteErr(symbol=symbol, kind=ErrorKind.UPSTREAM_REJECTED, detail="unknown symbol")

    async def close(self) -> None:
        self.closed = True

    @property
    def symbols_called(self) -> list[str]:
        return [c[0] for c in self.calls]


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def providers():
    return {
        "kite": FakeProvider("kite"),
        "finnhub": FakeProvider("finnhub"),
        "coingecko": FakeProvider("coingecko"),
    }


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def frozen_now():
    return lambda: MONDAY_MORNING_IST


@pytest.fixture
def make_scheduler(providers, sleep_recorder, frozen_now):
    from quoteboard.adapters.registry import ProviderSelector
    from quoteboard.services.fallback import FallbackGenerator
    from quoteboard.services.scheduler import FetchScheduler
    from quoteboard.services.session import DashboardSession

    def _make(market="crypto", kite_token=None, market_open=None, **kwargs):
        session = DashboardSession(active_market=market)
        session.set_kite_token(kite_token)
        selector = ProviderSelector(
            kite=providers["kite"],
            finnhub=providers["finnhub"],
            coingecko=providers["coingecko"],
        )
        options = {"sleep": sleep_recorder, "now": frozen_now}
        if market_open is not None:
            options["market_open"] = market_open
        options.update(kwargs)
        return FetchScheduler(session, selector, FallbackGenerator(seed=7), **options)

    return _make
