from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_symbol(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"symbol must be a string, got {type(value).__name__}")
    symbol = value.strip().upper()
    if not symbol:
        raise ValueError("symbol must not be empty")
    return symbol


class Quote(BaseModel):
    """Latest market snapshot for one symbol, as pushed by the stream."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal = Field(alias="changePercent")
    volume: int | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    market_cap: Decimal | None = Field(default=None, alias="marketCap")
    timestamp: datetime

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, value: Any) -> str:
        return normalize_symbol(value)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def provided(self, name: str) -> bool:
        """True when the field was present in the payload, even if null."""
        return name in self.model_fields_set

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def parse_quote(payload: dict | str | bytes) -> Quote:
    """Parse one inbound stream message into a Quote. Raises ValueError."""
    raw: Any

    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("payload must be utf-8 encoded") from exc

    if isinstance(payload, str):
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError("payload must be valid JSON string or dict") from exc
        except RecursionError as exc:
            raise ValueError("payload nesting too deep") from exc
    elif isinstance(payload, dict):
        raw = payload
    else:
        raise ValueError("payload must be dict or JSON string")

    if not isinstance(raw, dict):
        raise ValueError("decoded payload must be an object")

    return Quote.model_validate(raw)
