from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from quoteboard.services.fallback import (
    BASE_PRICES,
    DEFAULT_BASE_PRICE,
    FallbackGenerator,
    generate_fallback,
)


def test_shape_spacing_and_bounds() -> None:
    before = datetime.now(timezone.utc)
    points = generate_fallback("nifty", 24000.0)
    after = datetime.now(timezone.utc)

    assert len(points) == 79
    assert before - timedelta(seconds=1) <= points[-1].timestamp <= after + timedelta(seconds=1)
    for prev, cur in zip(points, points[1:]):
        assert cur.timestamp - prev.timestamp == timedelta(minutes=5)
    for p in points:
        assert 24000.0 * 0.98 <= p.price <= 24000.0 * 1.02
        assert p.source == "fallback"


def test_uses_table_base_price_when_not_given() -> None:
    points = FallbackGenerator(seed=1).generate("ethereum")
    assert BASE_PRICES["ethereum"] == 3500.0
    assert all(3500.0 * 0.98 <= p.price <= 3500.0 * 1.02 for p in points)


def test_unknown_key_defaults_to_hundred() -> None:
    gen = FallbackGenerator(seed=1)
    assert gen.base_price("not-a-symbol") == DEFAULT_BASE_PRICE == 100.0
    points = gen.generate("not-a-symbol")
    assert all(98.0 <= p.price <= 102.0 for p in points)


def test_ends_at_supplied_now() -> None:
    now = datetime(2026, 2, 16, 10, 0, tzinfo=timezone.utc)
    points = FallbackGenerator(seed=3).generate("apple", now=now)
    assert points[-1].timestamp == now
    assert points[0].timestamp == now - timedelta(minutes=5 * 78)


def test_same_seed_same_series() -> None:
    now = datetime(2026, 2, 16, 10, 0, tzinfo=timezone.utc)
    a = FallbackGenerator(seed=42).generate("tesla", now=now)
    b = FallbackGenerator(seed=42).generate("tesla", now=now)
    assert [p.price for p in a] == [p.price for p in b]


def test_series_is_not_flat() -> None:
    points = FallbackGenerator(seed=5).generate("solana")
    assert len({p.price for p in points}) > 1
    assert sum(p.price for p in points) / len(points) == pytest.approx(150.0, rel=0.01)
