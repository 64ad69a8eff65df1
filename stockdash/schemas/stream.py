from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ConnectionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"


class StreamStatus(BaseModel):
    state: ConnectionState
    connected: bool
    attempt: int
    max_attempts: int
    next_delay_ms: int | None = None
    last_error: str | None = None
    terminal: bool = False
    enabled: bool = True
    symbols: list[str] = []
    quotes: int = 0
    messages: int = 0
    malformed: int = 0


class SymbolsRequest(BaseModel):
    symbols: list[str]
