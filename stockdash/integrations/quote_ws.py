from __future__ import annotations

import functools
import json
import threading
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from stockdash.schemas.quote import Quote, parse_quote
from stockdash.schemas.stream import ConnectionState, StreamStatus
from stockdash.services.quote_cache import QuoteCache
from stockdash.services.subscriptions import SubscriptionSet

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BACKOFF_BASE_MS = 1000
DEFAULT_BACKOFF_CAP_MS = 30000


def backoff_delay_ms(
    attempt: int,
    *,
    base_ms: int = DEFAULT_BACKOFF_BASE_MS,
    cap_ms: int = DEFAULT_BACKOFF_CAP_MS,
) -> int:
    """Delay before reconnect attempt `attempt` (1-based): 1s, 2s, 4s, ... capped."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return int(min(base_ms * (2 ** (attempt - 1)), cap_ms))


def _default_transport_runner(ws_app: Any) -> threading.Thread:
    worker = threading.Thread(
        target=ws_app.run_forever,
        daemon=True,
        name="quote-ws-transport",
    )
    worker.start()
    return worker


def _default_timer_factory(delay_sec: float, callback: Callable[[], None]) -> Any:
    timer = threading.Timer(delay_sec, callback)
    timer.daemon = True
    return timer


class LiveQuoteClient:
    """One streaming connection multiplexing quotes for a changing symbol set.

    Transport callbacks, reconnect timers and caller methods all take the same
    re-entrant lock, so state transitions run one at a time. Callbacks from a
    transport that has been replaced or torn down are ignored.

    Steady-state failures never raise: they show up in `last_error`,
    `connected` and `terminal`. Once `max_attempts` reconnects have failed the
    client stays DISCONNECTED until `connect()` is called again.
    """

    def __init__(
        self,
        url: str,
        *,
        enabled: bool = True,
        auto_connect: bool = True,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
        backoff_cap_ms: int = DEFAULT_BACKOFF_CAP_MS,
        on_update: Optional[Callable[[Quote], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[Callable[[StreamStatus], None]] = None,
        websocket_app_factory: Optional[Callable[..., Any]] = None,
        transport_runner: Optional[Callable[[Any], Any]] = None,
        timer_factory: Optional[Callable[[float, Callable[[], None]], Any]] = None,
        join_timeout_sec: float = 1.0,
    ) -> None:
        if not url or not str(url).strip():
            raise ValueError("url must not be empty")
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")

        self.url = str(url).strip()
        self.enabled = enabled
        self.auto_connect = auto_connect
        self.max_attempts = max_attempts
        self.backoff_base_ms = backoff_base_ms
        self.backoff_cap_ms = backoff_cap_ms
        self._on_update = on_update
        self._on_error = on_error
        self._on_state_change = on_state_change
        self._websocket_app_factory = websocket_app_factory or self._default_websocket_app_factory
        self._transport_runner = transport_runner or _default_transport_runner
        self._timer_factory = timer_factory or _default_timer_factory
        self.join_timeout_sec = join_timeout_sec

        self._lock = threading.RLock()
        self._subscriptions = SubscriptionSet()
        self._cache = QuoteCache()
        self._ws_app: Any = None
        self._transport_worker: Any = None
        self._timer: Any = None
        self._timer_seq = 0
        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._next_delay_ms: int | None = None
        self._first_message_logged = False

        self.last_error: str | None = None
        self.terminal = False
        self.messages = 0
        self.malformed = 0

    def _default_websocket_app_factory(self, *args: Any, **kwargs: Any) -> Any:
        from websocket import WebSocketApp

        return WebSocketApp(*args, **kwargs)

    # read side

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def next_delay_ms(self) -> int | None:
        return self._next_delay_ms

    @property
    def quotes(self) -> Mapping[str, Quote]:
        """Read-only snapshot of the latest quote per symbol."""
        with self._lock:
            return MappingProxyType(dict(self._cache.view()))

    @property
    def symbols(self) -> list[str]:
        with self._lock:
            return self._subscriptions.symbols()

    def get_quote(self, symbol: str) -> Quote | None:
        with self._lock:
            return self._cache.get(symbol)

    def next_backoff_ms(self, attempt: int) -> int:
        return backoff_delay_ms(attempt, base_ms=self.backoff_base_ms, cap_ms=self.backoff_cap_ms)

    def status(self) -> StreamStatus:
        with self._lock:
            return StreamStatus(
                state=self._state,
                connected=self.connected,
                attempt=self._attempt,
                max_attempts=self.max_attempts,
                next_delay_ms=self._next_delay_ms,
                last_error=self.last_error,
                terminal=self.terminal,
                enabled=self.enabled,
                symbols=self._subscriptions.symbols(),
                quotes=len(self._cache),
                messages=self.messages,
                malformed=self.malformed,
            )

    # commands

    def connect(self) -> None:
        with self._lock:
            self._cancel_timer()
            if not self.enabled or len(self._subscriptions) == 0:
                print(
                    f"[WS][ws_connect_skip] enabled={self.enabled} symbols={len(self._subscriptions)}",
                    flush=True,
                )
                return
            if self.terminal:
                self.terminal = False
                self.last_error = None
                self._attempt = 0
            self._open_transport()

    def disconnect(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._close_transport()
            worker = self._transport_worker
            self._transport_worker = None
            self._attempt = 0
            self._next_delay_ms = None
            print("[WS][ws_disconnect] reason=caller", flush=True)
            self._set_state(ConnectionState.DISCONNECTED)

        # joined outside the lock: the worker's on_close callback takes it
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=self.join_timeout_sec)
            print(f"[WS][ws_worker_stop] alive={worker.is_alive()}", flush=True)

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.enabled = bool(enabled)
            should_disconnect = not self.enabled and self._state != ConnectionState.DISCONNECTED
            if self.enabled and self.auto_connect and self._state == ConnectionState.DISCONNECTED and not self.terminal:
                self.connect()
        if should_disconnect:
            self.disconnect()

    def subscribe(self, symbols: Iterable[str]) -> list[str]:
        """Add references for `symbols`; returns the symbols new to the desired set."""
        with self._lock:
            added = self._subscriptions.add(symbols)
            if not added:
                return added
            print(f"[WS][ws_subscribe_request] added={','.join(added)}", flush=True)
            if self._state == ConnectionState.CONNECTED:
                # full desired set; the server treats repeated subscribes as idempotent
                self._send_control("subscribe", self._subscriptions.symbols())
            elif self._state == ConnectionState.DISCONNECTED and self.auto_connect and not self.terminal:
                self.connect()
            return added

    def unsubscribe(self, symbols: Iterable[str]) -> list[str]:
        """Release references for `symbols`; returns the symbols that left the set."""
        with self._lock:
            removed = self._subscriptions.remove(symbols)
            if not removed:
                return removed
            print(f"[WS][ws_unsubscribe_request] removed={','.join(removed)}", flush=True)
            if self._state == ConnectionState.CONNECTED:
                self._send_control("unsubscribe", removed)
            return removed

    # transport

    def _open_transport(self) -> None:
        self._close_transport()
        symbols = self._subscriptions.symbols()
        print(
            f"[WS][ws_connect] url={self.url} symbols={','.join(symbols)} attempt={self._attempt}",
            flush=True,
        )
        self._set_state(ConnectionState.CONNECTING)
        try:
            ws_app = self._websocket_app_factory(
                self.url,
                on_open=self._handle_open,
                on_message=self._handle_message,
                on_error=self._handle_error,
                on_close=self._handle_close,
            )
            self._ws_app = ws_app
            self._transport_worker = self._transport_runner(ws_app)
        except ImportError:
            self._ws_app = None
            self._set_state(ConnectionState.DISCONNECTED)
            raise
        except Exception as exc:
            self.last_error = str(exc)
            print(f"[WS][ws_connect_error] {self.last_error}", flush=True)
            self._notify_error(self.last_error)
            self._drop()

    def _close_transport(self) -> None:
        ws_app = self._ws_app
        self._ws_app = None
        self._first_message_logged = False
        if ws_app is None:
            return
        try:
            ws_app.close()
        except Exception as exc:
            print(f"[WS][ws_close_error] {exc}", flush=True)

    def _send_control(self, action: str, symbols: list[str]) -> bool:
        ws_app = self._ws_app
        if ws_app is None:
            return False
        try:
            ws_app.send(json.dumps({"action": action, "symbols": symbols}))
        except Exception as exc:
            self.last_error = f"send failed: {exc}"
            print(f"[WS][ws_send_error] action={action} error={exc}", flush=True)
            self._notify_error(self.last_error)
            self._drop()
            return False
        print(f"[WS][ws_{action}] symbols={','.join(symbols)}", flush=True)
        return True

    def _handle_open(self, ws: Any) -> None:
        with self._lock:
            if ws is not self._ws_app:
                return
            print("[WS][ws_connect_result] status=open", flush=True)
            self._attempt = 0
            self._next_delay_ms = None
            self.last_error = None
            self._set_state(ConnectionState.CONNECTED)
            symbols = self._subscriptions.symbols()
            if symbols:
                self._send_control("subscribe", symbols)

    def _handle_message(self, ws: Any, raw_message: Any) -> None:
        with self._lock:
            if ws is not self._ws_app:
                return
            self.messages += 1
            if not self._first_message_logged:
                print("[WS][ws_first_message] received=1", flush=True)
                self._first_message_logged = True
            try:
                quote = parse_quote(raw_message)
            except ValueError as exc:
                self.malformed += 1
                print(f"[WS][ws_message_skip] reason={exc}", flush=True)
                return

            self._cache.upsert(quote)
            if self._on_update is not None:
                try:
                    self._on_update(quote)
                except Exception as exc:
                    print(f"[WS][ws_update_callback_error] symbol={quote.symbol} error={exc}", flush=True)

    def _handle_error(self, ws: Any, error: Any) -> None:
        with self._lock:
            if ws is not self._ws_app:
                return
            self.last_error = str(error) or type(error).__name__
            print(f"[WS][ws_error] {self.last_error}", flush=True)
            self._notify_error(self.last_error)
            self._drop()

    def _handle_close(self, ws: Any, code: Any = None, reason: Any = None) -> None:
        with self._lock:
            if ws is not self._ws_app:
                return
            print(f"[WS][ws_close] code={code} reason={reason}", flush=True)
            self._drop()

    def _drop(self) -> None:
        self._close_transport()
        if not self.enabled:
            self._next_delay_ms = None
            self._set_state(ConnectionState.DISCONNECTED)
            return

        if self._attempt >= self.max_attempts:
            self.terminal = True
            self._next_delay_ms = None
            self.last_error = f"reconnect attempts exhausted ({self.max_attempts})"
            print(f"[WS][ws_reconnect_exhausted] attempts={self._attempt}", flush=True)
            self._set_state(ConnectionState.DISCONNECTED)
            self._notify_error(self.last_error)
            return

        self._attempt += 1
        delay_ms = self.next_backoff_ms(self._attempt)
        self._next_delay_ms = delay_ms
        print(f"[WS][ws_reconnect_scheduled] attempt={self._attempt} delay_ms={delay_ms}", flush=True)
        self._set_state(ConnectionState.RECONNECTING)
        self._schedule_reconnect(delay_ms)

    # timers

    def _schedule_reconnect(self, delay_ms: int) -> None:
        self._cancel_timer()
        self._timer_seq += 1
        timer = self._timer_factory(delay_ms / 1000.0, functools.partial(self._fire_reconnect, self._timer_seq))
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        self._timer_seq += 1
        if timer is not None:
            timer.cancel()

    def _fire_reconnect(self, seq: int) -> None:
        with self._lock:
            if seq != self._timer_seq:
                return
            self._timer = None
            if not self.enabled or len(self._subscriptions) == 0:
                print(
                    f"[WS][ws_reconnect_skip] enabled={self.enabled} symbols={len(self._subscriptions)}",
                    flush=True,
                )
                self._next_delay_ms = None
                self._set_state(ConnectionState.DISCONNECTED)
                return
            self._open_transport()

    # notifications

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(self.status())
            except Exception as exc:
                print(f"[WS][ws_state_callback_error] state={state.value} error={exc}", flush=True)

    def _notify_error(self, message: str) -> None:
        if self._on_error is not None:
            try:
                self._on_error(message)
            except Exception as exc:
                print(f"[WS][ws_error_callback_error] error={exc}", flush=True)
