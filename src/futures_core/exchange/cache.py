"""In-memory TTL cache with an injectable clock."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

Clock = Callable[[], float]


class TTLCache:
    """Thread-unsafe dict + clock TTL cache.

    *clock* returns seconds and defaults to ``time.monotonic``; tests pass
    a controllable one.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Clock = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return cached value or ``None`` if missing / expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        ts, value = entry
        if self._clock() - ts >= self._ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* with current timestamp."""
        self._store[key] = (self._clock(), value)

    async def get_or_fetch(self, key: str, fetch: Callable[[], Any]) -> Any:
        """Return the cached value, or await *fetch()* and cache its result."""
        value = self.get(key)
        if value is None:
            value = await fetch()
            self.set(key, value)
        return value
