"""In-process TTL cache store with the same interface as FastRedisClient."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class InMemoryCacheStore:
    """Dict-backed cache store with per-entry absolute expiry.

    Used for tests and for local runs without Redis. Expired entries are
    never returned and are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def _live_value(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        expires_at = self._clock() + ttl_s if ttl_s else None
        with self._lock:
            self._data[key] = (value, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    async def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._data if key.startswith(prefix)]
            for key in doomed:
                del self._data[key]
            return len(doomed)

    async def incr_with_ttl(self, key: str, ttl_s: int | None = None) -> int | None:
        with self._lock:
            current = self._live_value(key)
            new_value = int(current or 0) + 1
            expires_at = self._clock() + ttl_s if ttl_s else None
            self._data[key] = (str(new_value), expires_at)
            return new_value

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._data)
