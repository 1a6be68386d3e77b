"""Trading-window clock for the dashboard markets.

All rules are evaluated in Indian Standard Time. The US session is modelled
as 19:00-01:30 IST spanning midnight. There is no holiday calendar: these are
display/gating approximations, not a certified exchange calendar.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import NamedTuple
from zoneinfo import ZoneInfo

from quoteboard.adapters.base import Market

IST = ZoneInfo("Asia/Kolkata")


class TradingWindow(NamedTuple):
    open_time: time
    close_time: time
    weekdays: frozenset[int]


INDIAN_WINDOW = TradingWindow(open_time=time(9, 0), close_time=time(15, 30), weekdays=frozenset(range(5)))
# Session opens Mon-Fri evening; the post-midnight tail only counts when the
# session started Mon-Thu.
US_WINDOW = TradingWindow(open_time=time(19, 0), close_time=time(1, 30), weekdays=frozenset(range(5)))
US_OVERNIGHT_START_DAYS = frozenset(range(4))


def _local(dt: datetime | None) -> datetime:
    now = dt or datetime.now(IST)
    if now.tzinfo is None:
        now = now.replace(tzinfo=IST)
    return now.astimezone(IST)


def is_indian_market_open(dt: datetime | None = None) -> bool:
    local = _local(dt)
    if local.weekday() not in INDIAN_WINDOW.weekdays:
        return False
    return INDIAN_WINDOW.open_time <= local.time() < INDIAN_WINDOW.close_time


def is_us_market_open(dt: datetime | None = None) -> bool:
    local = _local(dt)
    t = local.time()
    if t >= US_WINDOW.open_time and local.weekday() in US_WINDOW.weekdays:
        return True
    if t < US_WINDOW.close_time:
        previous_day = (local - timedelta(days=1)).weekday()
        return previous_day in US_OVERNIGHT_START_DAYS
    return False


def is_crypto_market_open(dt: datetime | None = None) -> bool:  # noqa: ARG001
    return True


_RULES = {
    Market.INDIAN_STOCKS: is_indian_market_open,
    Market.US_STOCKS: is_us_market_open,
    Market.CRYPTO: is_crypto_market_open,
}


def is_market_open(market: Market | str, dt: datetime | None = None) -> bool:
    """Check whether ``market`` is inside its trading window at ``dt``.

    If dt is None, uses current wall-clock time. Naive datetimes are read as IST.
    """
    try:
        rule = _RULES[Market(market)]
    except ValueError as exc:
        raise ValueError(f"Unknown market: {market}") from exc
    return rule(dt)


def market_status(market: Market | str, dt: datetime | None = None) -> str:
    return "open" if is_market_open(market, dt) else "closed"
