from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from quoteboard.adapters.base import Instrument, Market


def _table(*rows: Instrument) -> Mapping[str, Instrument]:
    return MappingProxyType({row.key: row for row in rows})


# Kite accepts instrument tokens for indices and EXCHANGE:SYMBOL for equities.
INDIAN_STOCKS = _table(
    Instrument(key="nifty", display_name="NIFTY 50", upstream_symbol="256265", color="#60a5fa"),
    Instrument(key="banknifty", display_name="BANKNIFTY", upstream_symbol="260105", color="#22c55e"),
    Instrument(key="sensex", display_name="SENSEX", upstream_symbol="265", color="#a78bfa"),
    Instrument(key="reliance", display_name="Reliance", upstream_symbol="NSE:RELIANCE", color="#f59e0b"),
    Instrument(key="tcs", display_name="TCS", upstream_symbol="NSE:TCS", color="#06b6d4"),
    Instrument(key="infy", display_name="Infosys", upstream_symbol="NSE:INFY", color="#fb7185"),
    Instrument(key="hdfcbank", display_name="HDFC Bank", upstream_symbol="NSE:HDFCBANK", color="#84cc16"),
)

CRYPTO = _table(
    Instrument(key="bitcoin", display_name="Bitcoin", upstream_symbol="bitcoin", color="#f59e0b", quote_currency="usd"),
    Instrument(key="ethereum", display_name="Ethereum", upstream_symbol="ethereum", color="#06b6d4", quote_currency="usd"),
    Instrument(key="solana", display_name="Solana", upstream_symbol="solana", color="#fb7185", quote_currency="usd"),
    Instrument(key="ripple", display_name="XRP", upstream_symbol="ripple", color="#38bdf8", quote_currency="usd"),
    Instrument(key="cardano", display_name="Cardano", upstream_symbol="cardano", color="#a78bfa", quote_currency="usd"),
    Instrument(key="dogecoin", display_name="Dogecoin", upstream_symbol="dogecoin", color="#eab308", quote_currency="usd"),
)

US_STOCKS = _table(
    Instrument(key="apple", display_name="Apple", upstream_symbol="AAPL", color="#60a5fa"),
    Instrument(key="microsoft", display_name="Microsoft", upstream_symbol="MSFT", color="#22c55e"),
    Instrument(key="nvidia", display_name="NVIDIA", upstream_symbol="NVDA", color="#84cc16"),
    Instrument(key="tesla", display_name="Tesla", upstream_symbol="TSLA", color="#7c3aed"),
    Instrument(key="oracle", display_name="Oracle", upstream_symbol="ORCL", color="#38bdf8"),
    Instrument(key="amazon", display_name="Amazon", upstream_symbol="AMZN", color="#f59e0b"),
    Instrument(key="google", display_name="Alphabet", upstream_symbol="GOOGL", color="#fb7185"),
)

_REGISTRIES: dict[Market, Mapping[str, Instrument]] = {
    Market.INDIAN_STOCKS: INDIAN_STOCKS,
    Market.CRYPTO: CRYPTO,
    Market.US_STOCKS: US_STOCKS,
}

SELECTION_SIZE = 4


def registry_for(market: Market | str) -> Mapping[str, Instrument]:
    return _REGISTRIES[Market(market)]


def default_keys(market: Market | str) -> list[str]:
    return list(registry_for(market))[:SELECTION_SIZE]
