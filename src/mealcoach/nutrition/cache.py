"""
MealCoach - Lookup cache.

Process-lifetime TTL cache for nutrition lookups. The shopping service only
depends on the LookupCache protocol, so tests can pass a deterministic clock
or a bounded cache.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, Protocol

CACHE_TTL_SECONDS = 10 * 60  # 10 minutes


class LookupCache(Protocol):
    """Minimal key -> value cache with a time-to-live."""

    ttl: float

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class TTLCache:
    """
    Key -> (value, stored_at) map with a TTL check on read.

    No eviction beyond TTL unless max_entries is set; then the oldest
    entries are dropped first.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Shared across requests for the process lifetime
_default_cache: TTLCache | None = None


def get_default_cache() -> TTLCache:
    """Process-wide nutrition cache, TTL from settings."""
    global _default_cache
    if _default_cache is None:
        from mealcoach.config import settings

        _default_cache = TTLCache(ttl=settings.nevo_cache_ttl_seconds)
    return _default_cache
