from __future__ import annotations


class StockdashError(Exception):
    """Base error for stockdash components."""


class StorageQuotaExceededError(StockdashError):
    pass


class MissingApiKeyError(StockdashError):
    pass


class TickerNotFoundError(StockdashError):
    def __init__(self, ticker: str) -> None:
        super().__init__(f"No data found for ticker: {ticker}")
        self.ticker = ticker


class UpstreamError(StockdashError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    pass
