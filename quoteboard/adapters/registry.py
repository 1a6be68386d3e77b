from __future__ import annotations

from dataclasses import dataclass

from quoteboard.adapters.base import Instrument, Market, QuoteProvider


@dataclass(frozen=True)
class AuthState:
    kite_access_token: str | None = None

    @property
    def kite_authenticated(self) -> bool:
        return bool((self.kite_access_token or "").strip())


@dataclass(frozen=True)
class ProviderCall:
    """Which provider to ask for one instrument, and with what arguments."""

    provider: QuoteProvider | None
    symbol: str = ""
    credential: str | None = None
    quote_currency: str | None = None

    @property
    def available(self) -> bool:
        return self.provider is not None

    @property
    def name(self) -> str:
        return self.provider.name if self.provider is not None else "none"


NO_PROVIDER = ProviderCall(provider=None)


class ProviderSelector:
    """Market policy: Kite LTP (login required), Finnhub quote, CoinGecko spot."""

    def __init__(self, kite: QuoteProvider, finnhub: QuoteProvider, coingecko: QuoteProvider) -> None:
        self.kite = kite
        self.finnhub = finnhub
        self.coingecko = coingecko

    def providers(self) -> list[QuoteProvider]:
        return [self.kite, self.finnhub, self.coingecko]

    def provider_for(self, market: Market | str, instrument: Instrument, auth: AuthState) -> ProviderCall:
        m = Market(market)
        if m is Market.INDIAN_STOCKS:
            if not auth.kite_authenticated:
                return NO_PROVIDER
            return ProviderCall(
                provider=self.kite,
                symbol=instrument.upstream_symbol,
                credential=(auth.kite_access_token or "").strip(),
            )
        if m is Market.US_STOCKS:
            return ProviderCall(provider=self.finnhub, symbol=instrument.upstream_symbol)
        return ProviderCall(
            provider=self.coingecko,
            symbol=instrument.upstream_symbol,
            quote_currency=instrument.quote_currency or "usd",
        )

    @staticmethod
    def fallback_on_no_provider(market: Market | str) -> bool:
        # Indian charts stay empty until login rather than showing demo data.
        return Market(market) is not Market.INDIAN_STOCKS
