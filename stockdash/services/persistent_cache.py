from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Callable, Generic, Protocol, TypeVar
from urllib.parse import quote

from pydantic import ValidationError

from stockdash.errors import StorageQuotaExceededError
from stockdash.schemas.cache import CacheEntry

T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; `quota_bytes` mimics a browser storage quota."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    def _used_bytes(self, *, excluding: str | None = None) -> int:
        return sum(
            len(k.encode("utf-8")) + len(v.encode("utf-8"))
            for k, v in self._items.items()
            if k != excluding
        )

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            needed = self._used_bytes(excluding=key) + len(key.encode("utf-8")) + len(value.encode("utf-8"))
            if needed > self.quota_bytes:
                raise StorageQuotaExceededError(f"quota exceeded writing {key!r} ({needed}>{self.quota_bytes} bytes)")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._items


class FileStorage:
    """One file per key under `directory`; survives process restarts."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._path(key).exists()


class PersistentCache:
    """TTL-bounded values in key-value storage, evicted lazily on read.

    Storage failures never reach the caller: reads fall back to the default
    and writes report False.
    """

    def __init__(self, storage: KeyValueStorage, *, now_fn: Callable[[], int] = _now_ms) -> None:
        self.storage = storage
        self._now_fn = now_fn

    def read(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.storage.get_item(key)
        except Exception as exc:
            print(f"[CACHE][cache_read_error] key={key} error={exc}", flush=True)
            return default

        if raw is None:
            return default

        try:
            entry = CacheEntry.model_validate(json.loads(raw))
        except (ValueError, ValidationError, RecursionError) as exc:
            print(f"[CACHE][cache_corrupt] key={key} error={exc}", flush=True)
            self.remove(key)
            return default

        if not entry.is_valid(self._now_fn()):
            print(f"[CACHE][cache_expired] key={key} expiry={entry.expiry}", flush=True)
            self.remove(key)
            return default

        return entry.value

    def write(self, key: str, value: Any, ttl_minutes: float) -> bool:
        expiry = self._now_fn() + int(ttl_minutes * 60 * 1000)
        try:
            payload = CacheEntry(value=value, expiry=expiry).model_dump_json()
            self.storage.set_item(key, payload)
        except Exception as exc:
            print(f"[CACHE][cache_write_error] key={key} error={exc}", flush=True)
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self.storage.remove_item(key)
        except Exception as exc:
            print(f"[CACHE][cache_remove_error] key={key} error={exc}", flush=True)


class PersistentValue(Generic[T]):
    """In-memory value restored from and written through to a PersistentCache."""

    def __init__(self, cache: PersistentCache, key: str, default: T, ttl_minutes: float) -> None:
        self.cache = cache
        self.key = key
        self.ttl_minutes = ttl_minutes
        self._value: T = cache.read(key, default)

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        self._value = value
        return self.cache.write(self.key, value, self.ttl_minutes)
