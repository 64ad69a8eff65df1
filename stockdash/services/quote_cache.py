from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from stockdash.schemas.quote import Quote, normalize_symbol


class QuoteCache:
    """Latest quote per symbol, last write by arrival wins."""

    def __init__(self) -> None:
        self._rows: dict[str, Quote] = {}

    def upsert(self, quote: Quote) -> None:
        # no timestamp comparison: out-of-order upstream messages overwrite
        self._rows[quote.symbol] = quote

    def get(self, symbol: str) -> Quote | None:
        try:
            return self._rows.get(normalize_symbol(symbol))
        except ValueError:
            return None

    def view(self) -> Mapping[str, Quote]:
        return MappingProxyType(self._rows)

    def __len__(self) -> int:
        return len(self._rows)
