"""Bounded per-instrument price history."""
from __future__ import annotations

from collections import deque
from typing import Iterable

from quoteboard.adapters.base import PricePoint, Quote

# One trading day of 5-minute samples.
HISTORY_CAPACITY = 78


class PriceHistoryStore:
    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._series: dict[str, deque[PricePoint]] = {}

    def _bucket(self, key: str) -> deque[PricePoint]:
        series = self._series.get(key)
        if series is None:
            series = deque(maxlen=self.capacity)
            self._series[key] = series
        return series

    def append(self, key: str, point: PricePoint) -> None:
        self._bucket(key).append(point)

    def replace(self, key: str, points: Iterable[PricePoint]) -> None:
        """Swap in a whole series; only the newest ``capacity`` points are kept."""
        self._series[key] = deque(points, maxlen=self.capacity)

    def history(self, key: str) -> list[PricePoint]:
        return list(self._series.get(key, ()))

    def has_history(self, key: str) -> bool:
        return bool(self._series.get(key))

    def keys(self) -> list[str]:
        return list(self._series)

    def read_quote(self, key: str) -> Quote:
        """Last price against the oldest retained point.

        The oldest point stands in for the previous close; no real prior
        session close is available to this store.
        """
        series = self._series.get(key)
        if not series:
            return Quote()
        last = series[-1]
        reference = series[0].price
        change = last.price - reference
        change_pct = change / reference * 100.0 if reference > 0 else 0.0
        return Quote(
            last_price=last.price,
            reference_price=reference,
            change=change,
            change_pct=change_pct,
            source=last.source,
            ts=last.timestamp,
        )
