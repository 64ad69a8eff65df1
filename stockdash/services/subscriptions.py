from __future__ import annotations

from typing import Iterable

from stockdash.schemas.quote import normalize_symbol


class SubscriptionSet:
    """Reference-counted desired symbol set shared by several consumers."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    @staticmethod
    def _unique(symbols: Iterable[str]) -> list[str]:
        out: list[str] = []
        seen: set[str] = set()
        for raw in symbols:
            try:
                symbol = normalize_symbol(raw)
            except ValueError:
                continue
            if symbol in seen:
                continue
            seen.add(symbol)
            out.append(symbol)
        return out

    def add(self, symbols: Iterable[str]) -> list[str]:
        """Add one reference per symbol; return symbols new to the set."""
        added: list[str] = []
        for symbol in self._unique(symbols):
            count = self._counts.get(symbol, 0)
            if count == 0:
                added.append(symbol)
            self._counts[symbol] = count + 1
        return added

    def remove(self, symbols: Iterable[str]) -> list[str]:
        """Drop one reference per symbol; return symbols that left the set."""
        removed: list[str] = []
        for symbol in self._unique(symbols):
            count = self._counts.get(symbol, 0)
            if count == 0:
                continue
            if count == 1:
                del self._counts[symbol]
                removed.append(symbol)
            else:
                self._counts[symbol] = count - 1
        return removed

    def refcount(self, symbol: str) -> int:
        try:
            return self._counts.get(normalize_symbol(symbol), 0)
        except ValueError:
            return 0

    def symbols(self) -> list[str]:
        return sorted(self._counts)

    def clear(self) -> None:
        self._counts.clear()

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self.refcount(symbol) > 0

    def __len__(self) -> int:
        return len(self._counts)
