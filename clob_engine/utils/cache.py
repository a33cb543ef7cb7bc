"""
Thread-safe TTL cache for market metadata.

Tick size and neg-risk flags decide the rounding grid and the exchange
contract an order is signed for. They change rarely, so they are cached
per token to keep a round trip off every order.
"""

import time
import threading
from typing import Optional, Any, Callable
from dataclasses import dataclass
from collections import OrderedDict
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with expiry."""
    value: Any
    expires_at: float


class TTLCache:
    """
    Thread-safe cache with time-to-live and LRU eviction.

    Falsy values (False, 0) are cached like any other; only a missing or
    expired key counts as a miss.
    """

    def __init__(self, default_ttl: float = 300.0, max_size: int = 10000):
        """
        Initialize cache.

        Args:
            default_ttl: Default TTL in seconds (5 minutes)
            max_size: Maximum entries before LRU eviction
        """
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return cached value, or default if missing/expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return default

            if time.monotonic() > entry.expires_at:
                del self._cache[key]
                logger.debug(f"Cache expired: {key}")
                return default

            self._cache.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Set value in cache, evicting the least recently used entry when full.

        Args:
            key: Cache key
            value: Value to cache
            ttl: TTL in seconds (uses default if None)
        """
        ttl = ttl if ttl is not None else self.default_ttl

        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                lru_key, _ = self._cache.popitem(last=False)
                logger.debug(f"Cache LRU eviction: {lru_key}")

            self._cache[key] = CacheEntry(value=value, expires_at=time.monotonic() + ttl)

    def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        ttl: Optional[float] = None
    ) -> Any:
        """
        Get from cache or fetch if missing/expired.

        Only one thread fetches on a miss; fetch errors propagate and
        nothing is cached.
        """
        missing = object()
        value = self.get(key, missing)
        if value is not missing:
            return value

        with self._lock:
            value = self.get(key, missing)
            if value is not missing:
                return value

            logger.debug(f"Cache miss, fetching: {key}")
            value = fetch_fn()
            self.set(key, value, ttl)
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)


class MarketMetadataCache:
    """Per-token cache of tick size and neg-risk flag."""

    def __init__(self, ttl: float = 300.0):
        self.cache = TTLCache(default_ttl=ttl)

    def get_tick_size(self, token_id: str) -> Optional[Decimal]:
        return self.cache.get(f"tick_size:{token_id}")

    def set_tick_size(self, token_id: str, tick_size: Decimal) -> None:
        self.cache.set(f"tick_size:{token_id}", tick_size)

    def get_neg_risk(self, token_id: str) -> Optional[bool]:
        return self.cache.get(f"neg_risk:{token_id}")

    def set_neg_risk(self, token_id: str, neg_risk: bool) -> None:
        self.cache.set(f"neg_risk:{token_id}", neg_risk)

    def tick_size(self, token_id: str, fetch_fn: Callable[[], Decimal]) -> Decimal:
        """Cached tick size, fetched through fetch_fn on a miss."""
        return self.cache.get_or_fetch(f"tick_size:{token_id}", fetch_fn)

    def neg_risk(self, token_id: str, fetch_fn: Callable[[], bool]) -> bool:
        """Cached neg-risk flag, fetched through fetch_fn on a miss."""
        return self.cache.get_or_fetch(f"neg_risk:{token_id}", fetch_fn)

    def clear(self) -> None:
        """Clear all cached metadata."""
        self.cache.clear()
