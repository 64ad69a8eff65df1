from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from stockdash.errors import (
    MissingApiKeyError,
    TickerNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
)
from stockdash.schemas.market import StockSnapshot


class PolygonSnapshotClient:
    """Previous-session snapshot for one ticker from the Polygon REST API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.polygon.io",
        timeout_sec: float = 5.0,
        session: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.session = session or requests

    @staticmethod
    def _to_float(value: Any, default: float | None = None) -> float | None:
        try:
            if value is None or value == "":
                return default
            return float(value)
        except (TypeError, ValueError):
            return default

    @staticmethod
    def _error_text(response: Any, fallback: str) -> str:
        try:
            payload = response.json()
        except ValueError:
            return fallback
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return fallback

    def _get_json(self, path: str, params: Dict[str, Any], *, failure: str) -> Dict[str, Any]:
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params={**params, "apiKey": self.api_key},
                timeout=self.timeout_sec,
            )
        except requests.exceptions.Timeout as exc:
            raise UpstreamTimeoutError("Request to Polygon API timed out.") from exc
        except requests.exceptions.RequestException as exc:
            raise UpstreamError(str(exc)) from exc

        if not 200 <= int(response.status_code) < 300:
            raise UpstreamError(
                self._error_text(response, failure),
                status_code=int(response.status_code),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"{failure}: malformed body") from exc
        if not isinstance(payload, dict):
            raise UpstreamError(f"{failure}: malformed body")
        return payload

    def get_snapshot(self, ticker: str) -> StockSnapshot:
        if not self.api_key:
            raise MissingApiKeyError("API key is not configured or is a placeholder.")
        symbol = str(ticker or "").strip().upper()
        if not symbol:
            raise ValueError("Ticker symbol is required")

        prev_payload = self._get_json(
            f"/v2/aggs/ticker/{symbol}/prev",
            {"adjusted": "true"},
            failure=f"Failed to fetch previous day data for {symbol}",
        )
        details_payload = self._get_json(
            f"/v3/reference/tickers/{symbol}",
            {},
            failure=f"Failed to fetch ticker details for {symbol}",
        )

        results = prev_payload.get("results") or []
        prev_day = results[0] if isinstance(results, list) and results else None
        details = details_payload.get("results")
        if not isinstance(prev_day, dict) or not isinstance(details, dict):
            raise TickerNotFoundError(symbol)

        close = self._to_float(prev_day.get("c"))
        open_ = self._to_float(prev_day.get("o"))
        if close is None or open_ is None:
            raise UpstreamError(f"missing open/close in previous day data for {symbol}")

        change = close - open_
        change_pct = change / open_ if open_ else 0.0

        return StockSnapshot(
            symbol=str(prev_day.get("T") or symbol),
            name=details.get("name"),
            regularMarketPrice=close,
            regularMarketChange=change,
            regularMarketChangePercent=change_pct,
            regularMarketDayHigh=self._to_float(prev_day.get("h")),
            regularMarketDayLow=self._to_float(prev_day.get("l")),
            regularMarketVolume=self._to_float(prev_day.get("v")),
            marketCap=self._to_float(details.get("market_cap")),
            regularMarketOpen=open_,
        )
