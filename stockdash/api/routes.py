from fastapi import APIRouter, HTTPException, Request

from stockdash.errors import (
    MissingApiKeyError,
    TickerNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
)
from stockdash.schemas.stream import SymbolsRequest

router = APIRouter()


def _quote_client(request: Request):
    return request.app.state.quote_client


@router.get('/stock/{ticker}')
def get_stock_snapshot(ticker: str, request: Request):
    if not ticker.strip():
        raise HTTPException(status_code=400, detail='Ticker symbol is required')

    client = request.app.state.snapshot_client
    try:
        snapshot = client.get_snapshot(ticker)
    except MissingApiKeyError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except TickerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UpstreamTimeoutError as exc:
        print(f"[MARKET][snapshot_timeout] ticker={ticker.upper()}", flush=True)
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except UpstreamError as exc:
        print(f"[MARKET][snapshot_error] ticker={ticker.upper()} error={exc}", flush=True)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return snapshot.model_dump()


@router.get('/quotes/live')
def get_live_quotes(request: Request):
    quotes = _quote_client(request).quotes
    return {symbol: quote.to_wire() for symbol, quote in sorted(quotes.items())}


@router.get('/quotes/live/{symbol}')
def get_live_quote(symbol: str, request: Request):
    quote = _quote_client(request).get_quote(symbol)
    if quote is None:
        raise HTTPException(status_code=404, detail='quote not found')
    return quote.to_wire()


@router.post('/subscriptions')
def subscribe(req: SymbolsRequest, request: Request):
    client = _quote_client(request)
    added = client.subscribe(req.symbols)
    return {'added': added, 'symbols': client.symbols}


@router.delete('/subscriptions')
def unsubscribe(req: SymbolsRequest, request: Request):
    client = _quote_client(request)
    removed = client.unsubscribe(req.symbols)
    return {'removed': removed, 'symbols': client.symbols}


@router.get('/stream/status')
def stream_status(request: Request):
    return _quote_client(request).status().model_dump(mode='json')


@router.post('/stream/connect')
def stream_connect(request: Request):
    client = _quote_client(request)
    client.connect()
    return client.status().model_dump(mode='json')


@router.post('/stream/disconnect')
def stream_disconnect(request: Request):
    client = _quote_client(request)
    client.disconnect()
    return client.status().model_dump(mode='json')


@router.get('/categories')
def list_categories(request: Request):
    service = request.app.state.category_service
    return [c.model_dump() for c in service.list_categories()]
