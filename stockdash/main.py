from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockdash.api.routes import router
from stockdash.config.settings import Settings, get_settings
from stockdash.integrations.market_rest import PolygonSnapshotClient
from stockdash.integrations.quote_ws import LiveQuoteClient
from stockdash.services.categories import CategoryService
from stockdash.services.persistent_cache import FileStorage, PersistentCache


def _build_quote_client(settings: Settings) -> LiveQuoteClient:
    return LiveQuoteClient(
        settings.STOCK_WS_URL,
        enabled=settings.STOCK_WS_ENABLED,
        max_attempts=settings.STOCK_WS_MAX_RECONNECT_ATTEMPTS,
    )


def _bind_runtime_clients(app: FastAPI, settings: Settings) -> None:
    app.state.quote_client = _build_quote_client(settings)
    app.state.snapshot_client = PolygonSnapshotClient(
        settings.POLYGON_API_KEY,
        base_url=settings.POLYGON_BASE_URL,
        timeout_sec=settings.MARKET_HTTP_TIMEOUT_SEC,
    )
    app.state.category_service = CategoryService(
        PersistentCache(FileStorage(settings.CACHE_DIR)),
        ttl_minutes=settings.CATEGORY_CACHE_TTL_MINUTES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()
    quote_client = app.state.quote_client
    if settings.STOCK_WS_SYMBOLS:
        quote_client.subscribe(settings.STOCK_WS_SYMBOLS)
    print(f"[APP][startup] ws_symbols={','.join(settings.STOCK_WS_SYMBOLS)}", flush=True)

    try:
        yield
    finally:
        quote_client.disconnect()
        print("[APP][shutdown] quote_client=disconnected", flush=True)


app = FastAPI(title="Stockdash Quote Gateway", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.get_settings = get_settings
_bind_runtime_clients(app, get_settings())
