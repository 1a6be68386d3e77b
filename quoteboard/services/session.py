from __future__ import annotations

import logging
from dataclasses import dataclass, field

from quoteboard.adapters.base import Market, Quote
from quoteboard.adapters.registry import AuthState
from quoteboard.services.price_history import PriceHistoryStore
from quoteboard.services.selection import SelectedSet

logger = logging.getLogger(__name__)


@dataclass
class DashboardSession:
    """Everything one dashboard instance knows; owned by the host, passed to the scheduler."""

    active_market: Market = Market.INDIAN_STOCKS
    auth: AuthState = field(default_factory=AuthState)
    history: PriceHistoryStore = field(default_factory=PriceHistoryStore)
    selections: dict[Market, SelectedSet] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.active_market = Market(self.active_market)

    def selected(self, market: Market | str | None = None) -> SelectedSet:
        m = Market(market or self.active_market)
        if m not in self.selections:
            self.selections[m] = SelectedSet.default(m)
        return self.selections[m]

    def switch_market(self, market: Market | str) -> SelectedSet:
        """Activate ``market`` with its default four; price history is kept."""
        self.active_market = Market(market)
        self.selections[self.active_market] = SelectedSet.default(self.active_market)
        logger.info("Active market is now %s", self.active_market.value)
        return self.selections[self.active_market]

    def set_kite_token(self, token: str | None) -> None:
        self.auth = AuthState(kite_access_token=token or None)

    def quote(self, key: str) -> Quote:
        return self.history.read_quote(key)

    def quotes(self, market: Market | str | None = None) -> dict[str, Quote]:
        return {key: self.quote(key) for key in self.selected(market)}

    def connection_status(self) -> str:
        if self.active_market is Market.INDIAN_STOCKS and not self.auth.kite_authenticated:
            return "login_required"
        sources = {q.source for q in self.quotes().values()}
        if "live" in sources:
            return "connected"
        if "fallback" in sources:
            return "demo"
        return "loading"
