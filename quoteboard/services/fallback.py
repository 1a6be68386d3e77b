"""Synthetic demo history used when an instrument cannot be fetched."""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from quoteboard.adapters.base import PricePoint

FALLBACK_POINTS = 79
FALLBACK_STEP = timedelta(minutes=5)
FALLBACK_SPREAD = 0.02
DEFAULT_BASE_PRICE = 100.0

BASE_PRICES = {
    "nifty": 24000.0,
    "banknifty": 48000.0,
    "sensex": 80000.0,
    "reliance": 2900.0,
    "tcs": 4000.0,
    "infy": 1800.0,
    "hdfcbank": 1650.0,
    "bitcoin": 65000.0,
    "ethereum": 3500.0,
    "solana": 150.0,
    "ripple": 0.6,
    "cardano": 0.45,
    "dogecoin": 0.15,
    "apple": 190.0,
    "microsoft": 420.0,
    "nvidia": 450.0,
    "tesla": 250.0,
    "oracle": 120.0,
    "amazon": 180.0,
    "google": 170.0,
}


class FallbackGenerator:
    """Plausible flat-ish series around a fixed base price.

    Points are tagged ``source="fallback"``; labelling them as demo data is
    up to whoever renders them.
    """

    def __init__(self, seed: int | None = None, base_prices: dict[str, float] | None = None):
        self._rng = random.Random(seed)
        self.base_prices = dict(BASE_PRICES if base_prices is None else base_prices)

    def base_price(self, key: str) -> float:
        return self.base_prices.get(key, DEFAULT_BASE_PRICE)

    def generate(self, key: str, base_price: float | None = None, now: datetime | None = None) -> list[PricePoint]:
        base = self.base_price(key) if base_price is None else base_price
        end = now or datetime.now(timezone.utc)
        points: list[PricePoint] = []
        for i in range(FALLBACK_POINTS - 1, -1, -1):
            variation = (self._rng.random() - 0.5) * base * FALLBACK_SPREAD
            points.append(PricePoint(timestamp=end - i * FALLBACK_STEP, price=base + variation, source="fallback"))
        return points


def generate_fallback(key: str, base_price: float | None = None, now: datetime | None = None) -> list[PricePoint]:
    return FallbackGenerator().generate(key, base_price, now)
