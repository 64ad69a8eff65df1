import os
from functools import lru_cache

from pydantic import BaseModel, field_validator

DEFAULT_WS_URL = "wss://localhost:7039/ws/stock"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    STOCK_WS_URL: str = DEFAULT_WS_URL
    STOCK_WS_SYMBOLS: list[str] = []
    STOCK_WS_ENABLED: bool = True
    STOCK_WS_MAX_RECONNECT_ATTEMPTS: int = 5
    POLYGON_API_KEY: str | None = None
    POLYGON_BASE_URL: str = "https://api.polygon.io"
    MARKET_HTTP_TIMEOUT_SEC: float = 5.0
    CACHE_DIR: str = ".stockdash-cache"
    CATEGORY_CACHE_TTL_MINUTES: int = 15

    @field_validator("STOCK_WS_URL")
    @classmethod
    def _url_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("STOCK_WS_URL must not be empty")
        return value.strip()

    @field_validator("STOCK_WS_MAX_RECONNECT_ATTEMPTS", "CATEGORY_CACHE_TTL_MINUTES")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        raw_ws_symbols = os.getenv("STOCK_WS_SYMBOLS", "")
        ws_symbols = [s.strip().upper() for s in raw_ws_symbols.split(",") if s.strip()]

        values = {
            "STOCK_WS_URL": os.getenv("STOCK_WS_URL", DEFAULT_WS_URL),
            "STOCK_WS_SYMBOLS": ws_symbols,
            "STOCK_WS_ENABLED": _env_bool("STOCK_WS_ENABLED", True),
            "POLYGON_API_KEY": os.getenv("POLYGON_API_KEY") or None,
            "POLYGON_BASE_URL": os.getenv("POLYGON_BASE_URL", "https://api.polygon.io"),
            "CACHE_DIR": os.getenv("CACHE_DIR", ".stockdash-cache"),
        }
        # numeric values are left as strings so pydantic reports bad input
        for name in (
            "STOCK_WS_MAX_RECONNECT_ATTEMPTS",
            "MARKET_HTTP_TIMEOUT_SEC",
            "CATEGORY_CACHE_TTL_MINUTES",
        ):
            raw = os.getenv(name)
            if raw is not None and raw.strip():
                values[name] = raw.strip()

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
