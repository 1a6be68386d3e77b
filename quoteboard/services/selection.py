from __future__ import annotations

from typing import Iterable, Mapping

from quoteboard.adapters.base import Instrument, Market
from quoteboard.core.symbols import SELECTION_SIZE, default_keys, registry_for


class SelectedSet:
    """The four instrument keys on screen; never holds the same key twice."""

    def __init__(self, market: Market | str, keys: Iterable[str] | None = None) -> None:
        self.market = Market(market)
        self._registry: Mapping[str, Instrument] = registry_for(self.market)
        picked = list(keys) if keys is not None else default_keys(self.market)
        if len(picked) != SELECTION_SIZE:
            raise ValueError(f"Selection needs exactly {SELECTION_SIZE} keys, got {len(picked)}")
        if len(set(picked)) != len(picked):
            raise ValueError(f"Duplicate keys in selection: {picked}")
        for key in picked:
            self._check(key)
        self._keys = picked

    @classmethod
    def default(cls, market: Market | str) -> SelectedSet:
        return cls(market)

    def _check(self, key: str) -> None:
        if key not in self._registry:
            raise ValueError(f"Unknown instrument for {self.market.value}: {key}")

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    def instruments(self) -> list[Instrument]:
        return [self._registry[key] for key in self._keys]

    def assign(self, slot: int, key: str) -> list[str]:
        """Put ``key`` in ``slot``; if it is already shown elsewhere the two slots swap."""
        if not 0 <= slot < len(self._keys):
            raise IndexError(f"Slot out of range: {slot}")
        self._check(key)
        if key in self._keys:
            other = self._keys.index(key)
            self._keys[slot], self._keys[other] = self._keys[other], self._keys[slot]
        else:
            self._keys[slot] = key
        return self.keys

    def choices(self, slot: int) -> list[str]:
        """Keys a slot may switch to without colliding: its own plus the unshown ones."""
        current = self._keys[slot]
        return [k for k in self._registry if k == current or k not in self._keys]

    def __iter__(self):
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"SelectedSet({self.market.value!r}, {self._keys!r})"
