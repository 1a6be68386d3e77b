"""Tests for RequestPacer."""
import asyncio

from quoteboard.shared.rate_limiter import RequestPacer


def test_initial_interval():
    p = RequestPacer("test", base_interval=1.1)
    assert p.current_interval == 1.1


def test_on_success_resets():
    p = RequestPacer("test", base_interval=1.0, max_interval=30.0)
    p.on_rate_limit()
    assert p.current_interval > 1.0
    p.on_success()
    assert p.current_interval == 1.0


def test_exponential_backoff():
    p = RequestPacer("test", base_interval=1.0, max_interval=300.0, jitter_factor=0.0)
    p.on_rate_limit()
    assert p.current_interval == 2.0
    p.on_rate_limit()
    assert p.current_interval == 4.0
    p.on_rate_limit()
    assert p.current_interval == 8.0


def test_small_base_still_backs_off():
    p = RequestPacer("test", base_interval=0.25, max_interval=300.0, jitter_factor=0.0)
    p.on_rate_limit()
    assert p.current_interval == 1.0


def test_max_interval_cap():
    p = RequestPacer("test", base_interval=2.0, max_interval=10.0, jitter_factor=0.3)
    for _ in range(20):
        p.on_rate_limit()
    assert p.current_interval <= 10.0


def test_pause_sleeps_current_interval():
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    p = RequestPacer("test", base_interval=0.25, sleep=fake_sleep)
    asyncio.run(p.pause())
    assert slept == [0.25]


def test_zero_interval_does_not_sleep():
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    p = RequestPacer("test", base_interval=0.0, sleep=fake_sleep)
    asyncio.run(p.pause())
    assert slept == []


def test_reset():
    p = RequestPacer("test", base_interval=5.0, max_interval=60.0)
    p.on_rate_limit()
    p.on_rate_limit()
    p.reset()
    assert p.current_interval == 5.0
