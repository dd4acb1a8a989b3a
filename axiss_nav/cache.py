# axiss_nav/cache.py

import asyncio
import logging
import time
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger("axiss_nav.cache")

DEFAULT_TTL_SEC = 5 * 60
CLEANUP_INTERVAL_SEC = 60

_MISSING = object()


class MemoryCache:
    """Process-local TTL cache. Expired entries are dropped on read or cleanup()."""

    def __init__(self, default_ttl: float = DEFAULT_TTL_SEC, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items: Dict[str, Tuple[Any, float, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._items[key] = (value, self._clock(), ttl or self.default_ttl)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return default
            value, stored_at, ttl = entry
            if self._clock() - stored_at > ttl:
                del self._items[key]
                return default
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, at, ttl) in self._items.items() if now - at > ttl]
            for k in expired:
                del self._items[k]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"size": len(self._items), "keys": list(self._items.keys())}


cache = MemoryCache()


async def cleanup_loop(store: MemoryCache = cache, interval: float = CLEANUP_INTERVAL_SEC) -> None:
    """Sweep expired entries every `interval` seconds until cancelled."""
    logger.info("cache cleanup every %ss", interval)
    while True:
        await asyncio.sleep(interval)
        removed = store.cleanup()
        if removed:
            logger.debug("cache cleanup removed %d expired entr%s", removed, "y" if removed == 1 else "ies")


async def cached(key: str, fn: Callable[[], Awaitable[Any]], ttl: Optional[float] = None,
                 store: MemoryCache = cache,
                 should_cache: Optional[Callable[[Any], bool]] = None) -> Any:
    """Return the cached value for `key`, computing it with `fn` on a miss.

    When `should_cache` is given, a computed value is only stored if it
    returns true for that value.
    """
    hit = store.get(key, _MISSING)
    if hit is not _MISSING:
        return hit
    result = await fn()
    if should_cache is None or should_cache(result):
        store.set(key, result, ttl)
    return result
