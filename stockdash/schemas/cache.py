from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    value: Any
    expiry: int

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expiry
