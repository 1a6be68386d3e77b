"""Per-provider request pacing with backoff on HTTP 429."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RequestPacer:
    """Holds the gap to leave between successive calls to one provider.

    The gap is a fixed ``base_interval`` while the provider behaves. A rate
    limit response widens it exponentially (with jitter, capped at
    ``max_interval``); the next success restores the base value.

    Usage:
        pacer = RequestPacer("finnhub", base_interval=1.1)
        for symbol in symbols:
            if issued_before:
                await pacer.pause()
            ...
            pacer.on_success()  # or pacer.on_rate_limit()
    """

    def __init__(
        self,
        provider_name: str,
        base_interval: float = 1.0,
        max_interval: float = 30.0,
        jitter_factor: float = 0.3,
        sleep: Sleep | None = None,
    ):
        self.provider = provider_name
        self.base = max(0.0, base_interval)
        self.max = max(self.base, max_interval)
        self.jitter_factor = jitter_factor
        self._sleep = sleep or asyncio.sleep
        self._current = self.base
        self._consecutive_failures = 0

    @property
    def current_interval(self) -> float:
        return self._current

    async def pause(self) -> None:
        if self._current > 0:
            await self._sleep(self._current)

    def on_success(self) -> None:
        self._consecutive_failures = 0
        self._current = self.base

    def on_rate_limit(self) -> None:
        self._consecutive_failures += 1
        backoff = min(
            max(self.base, 0.5) * (2**self._consecutive_failures),
            self.max,
        )
        jitter = random.uniform(0, backoff * self.jitter_factor)
        self._current = min(backoff + jitter, self.max)
        logger.warning(
            "Rate limit hit for %s, spacing requests %.1fs apart (attempt %d)",
            self.provider,
            self._current,
            self._consecutive_failures,
        )

    def reset(self) -> None:
        self._consecutive_failures = 0
        self._current = self.base
