from __future__ import annotations

import asyncio

import httpx
import pytest

from quoteboard.adapters.base import QuoteErr, QuoteOk
from quoteboard.adapters.coingecko import CoinGeckoSpotProvider
from quoteboard.adapters.finnhub import FinnhubQuoteProvider
from quoteboard.adapters.kite import KiteLtpProvider, parse_ltp
from quoteboard.core.coingecko_client import CoinGeckoClient
from quoteboard.core.finnhub_client import FinnhubClient
from quoteboard.core.kite_client import KiteClient
from quoteboard.shared.errors import (
    ErrorKind,
    ShapeValidationFailed,
    UpstreamRejected,
    UpstreamTimeout,
)


def _mock(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# -- kite ----------------------------------------------------------------------


def test_kite_ltp_sends_instruments_and_auth_header() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["instruments"] = request.url.params.get_list("i")
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"status": "success", "data": {"NSE:TCS": {"instrument_token": 2953217, "last_price": 4012.5}}})

    async def run():
        kite = KiteClient(api_key="key1")
        kite.client = _mock(handler)
        provider = KiteLtpProvider(kite)
        try:
            return await provider.get_price("NSE:TCS", credential="tok9")
        finally:
            await provider.close()

    result = asyncio.run(run())
    assert isinstance(result, QuoteOk)
    assert result.price == 4012.5
    assert result.currency == "INR"
    assert seen == {"path": "/quote/ltp", "instruments": ["NSE:TCS"], "auth": "token key1:tok9"}


def test_kite_without_token_is_no_provider() -> None:
    provider = KiteLtpProvider(KiteClient(api_key="key1"))
    result = asyncio.run(provider.get_price("NSE:TCS", credential=""))
    assert isinstance(result, QuoteErr)
    assert result.kind is ErrorKind.NO_PROVIDER


def test_kite_http_error_keeps_status() -> None:
    async def run():
        kite = KiteClient(api_key="key1")
        kite.client = _mock(lambda request: httpx.Response(403, json={"message": "Invalid token"}))
        return await KiteLtpProvider(kite).get_price("256265", credential="expired")

    result = asyncio.run(run())
    assert result.kind is ErrorKind.UPSTREAM_REJECTED
    assert result.status_code == 403


def test_kite_missing_api_key_rejected() -> None:
    with pytest.raises(UpstreamRejected):
        asyncio.run(KiteClient().get_ltp("tok", ["NSE:INFY"]))


def test_parse_ltp_prefers_matching_row_then_first() -> None:
    payload = {"data": {"NSE:INFY": {"last_price": 1801.0}, "NSE:TCS": {"last_price": 4000.0}}}
    assert parse_ltp(payload, "NSE:TCS").last_price == 4000.0
    assert parse_ltp(payload, "265").last_price == 1801.0


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {}},
        {"data": {"NSE:TCS": {"last_price": "4000"}}},
        {"data": {"NSE:TCS": {"instrument_token": 1}}},
        ["not", "a", "dict"],
    ],
)
def test_parse_ltp_rejects_bad_shapes(payload) -> None:
    with pytest.raises(ShapeValidationFailed):
        parse_ltp(payload, "NSE:TCS")


# -- finnhub -------------------------------------------------------------------


def test_finnhub_quote_carries_previous_close() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["symbol"] = request.url.params.get("symbol")
        seen["token"] = request.url.params.get("token")
        return httpx.Response(200, json={"c": 191.25, "pc": 189.0, "d": 2.25, "dp": 1.19})

    async def run():
        client = FinnhubClient(api_key="fh-key")
        client.client = _mock(handler)
        return await FinnhubQuoteProvider(client).get_price("aapl")

    result = asyncio.run(run())
    assert isinstance(result, QuoteOk)
    assert result.price == 191.25
    assert result.reference_price == 189.0
    assert seen == {"symbol": "AAPL", "token": "fh-key"}


@pytest.mark.parametrize("body", [{"c": 0, "pc": 0}, {"pc": 189.0}, {"c": None}])
def test_finnhub_unusable_quote_is_shape_failure(body) -> None:
    async def run():
        client = FinnhubClient(api_key="fh-key")
        client.client = _mock(lambda request: httpx.Response(200, json=body))
        return await FinnhubQuoteProvider(client).get_price("ZZZZ")

    result = asyncio.run(run())
    assert result.kind is ErrorKind.SHAPE_VALIDATION_FAILED


def test_finnhub_rate_limit_status_reaches_result() -> None:
    async def run():
        client = FinnhubClient(api_key="fh-key")
        client.client = _mock(lambda request: httpx.Response(429, json={"error": "API limit reached"}))
        return await FinnhubQuoteProvider(client).get_price("MSFT")

    result = asyncio.run(run())
    assert result.kind is ErrorKind.UPSTREAM_REJECTED
    assert result.status_code == 429


def test_finnhub_without_key_is_rejected() -> None:
    result = asyncio.run(FinnhubQuoteProvider(FinnhubClient()).get_price("MSFT"))
    assert result.kind is ErrorKind.UPSTREAM_REJECTED


def test_finnhub_timeout_mapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async def run():
        client = FinnhubClient(api_key="fh-key")
        client.client = _mock(handler)
        return await FinnhubQuoteProvider(client).get_price("MSFT")

    assert asyncio.run(run()).kind is ErrorKind.UPSTREAM_TIMEOUT


# -- coingecko -----------------------------------------------------------------


def _gecko(handler, clock: _Clock) -> CoinGeckoClient:
    gecko = CoinGeckoClient(cache_ttl=20.0, clock=clock)
    gecko.client = _mock(handler)
    return gecko


def test_coingecko_cache_hit_skips_network() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        return httpx.Response(200, json={"bitcoin": {"usd": 65123.0}})

    clock = _Clock()
    gecko = _gecko(handler, clock)

    async def run():
        first = await gecko.get_spot_price("bitcoin", "usd")
        clock.now += 5
        second = await gecko.get_spot_price("bitcoin", "USD")
        return first, second

    first, second = asyncio.run(run())
    assert first == {"symbol": "bitcoin", "currency": "usd", "price": 65123.0, "cached": False, "stale": False}
    assert second["cached"] is True
    assert second["stale"] is False
    assert calls == [{"ids": "bitcoin", "vs_currencies": "usd"}]


def test_coingecko_refetches_after_ttl() -> None:
    prices = iter([65000.0, 65500.0])
    clock = _Clock()
    gecko = _gecko(lambda request: httpx.Response(200, json={"bitcoin": {"usd": next(prices)}}), clock)

    async def run():
        await gecko.get_spot_price("bitcoin")
        clock.now += 21
        return await gecko.get_spot_price("bitcoin")

    row = asyncio.run(run())
    assert row["price"] == 65500.0
    assert row["cached"] is False


def test_coingecko_serves_stale_price_on_error() -> None:
    responses = iter([httpx.Response(200, json={"ethereum": {"usd": 3490.0}}), httpx.Response(429)])
    clock = _Clock()
    gecko = _gecko(lambda request: next(responses), clock)

    async def run():
        await gecko.get_spot_price("ethereum")
        clock.now += 60
        return await gecko.get_spot_price("ethereum")

    row = asyncio.run(run())
    assert row["price"] == 3490.0
    assert row["stale"] is True


def test_coingecko_error_without_cache_raises() -> None:
    gecko = _gecko(lambda request: httpx.Response(503), _Clock())
    with pytest.raises(UpstreamRejected) as excinfo:
        asyncio.run(gecko.get_spot_price("solana"))
    assert excinfo.value.status_code == 503


def test_coingecko_timeout_without_cache_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamTimeout):
        asyncio.run(_gecko(handler, _Clock()).get_spot_price("solana"))


@pytest.mark.parametrize("body", [{}, {"ripple": {}}, {"ripple": {"usd": "0.61"}}, {"ripple": {"usd": True}}])
def test_coingecko_missing_price_is_shape_failure(body) -> None:
    gecko = _gecko(lambda request: httpx.Response(200, json=body), _Clock())
    result = asyncio.run(CoinGeckoSpotProvider(gecko).get_price("ripple", quote_currency="usd"))
    assert result.kind is ErrorKind.SHAPE_VALIDATION_FAILED


@pytest.mark.parametrize("raw", [b'{"bitcoin": {"usd": NaN}}', b'{"bitcoin": {"usd": Infinity}}', b'{"bitcoin": {"usd": -Infinity}}'])
def test_coingecko_non_finite_price_is_shape_failure(raw) -> None:
    gecko = _gecko(
        lambda request: httpx.Response(200, content=raw, headers={"Content-Type": "application/json"}), _Clock()
    )
    result = asyncio.run(CoinGeckoSpotProvider(gecko).get_price("bitcoin"))
    assert isinstance(result, QuoteErr)
    assert result.kind is ErrorKind.SHAPE_VALIDATION_FAILED


def test_coingecko_provider_uses_quote_currency() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"dogecoin": {"inr": 12.7}})

    gecko = _gecko(handler, _Clock())
    result = asyncio.run(CoinGeckoSpotProvider(gecko).get_price("dogecoin", quote_currency="INR"))
    assert result.price == 12.7
    assert result.currency == "INR"
    assert seen["vs_currencies"] == "inr"


def test_coingecko_provider_flags_stale_quote() -> None:
    responses = iter([httpx.Response(200, json={"solana": {"usd": 150.5}}), httpx.Response(500)])
    clock = _Clock()
    provider = CoinGeckoSpotProvider(_gecko(lambda request: next(responses), clock))

    async def run():
        fresh = await provider.get_price("solana")
        clock.now += 30
        return fresh, await provider.get_price("solana")

    fresh, stale = asyncio.run(run())
    assert fresh.stale is False
    assert stale.stale is True
    assert stale.price == 150.5
