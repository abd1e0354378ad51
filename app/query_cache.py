"""
Query Cache Module for ModRepo
Process-local read-through cache for catalog reads, with per-entry TTL. Entries
expire when read, and writers periodically sweep the ones nobody reads again.
There is no invalidation: writers go straight to the database and readers may
see a result up to one TTL old.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, NamedTuple, Optional
from urllib.parse import quote

from metrics import cache_requests_total

logger = logging.getLogger(__name__)

# Result shapes stored in the cache
KIND_VERSION = "version"
KIND_VERSIONS = "versions"
KIND_COUNT = "count"

KEY_SEPARATOR = ":"
LIST_SEPARATOR = ","


class CacheEntry(NamedTuple):
    value: Any
    kind: str
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


def _key_part(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple, set, frozenset)):
        return LIST_SEPARATOR.join(quote(str(item), safe="") for item in sorted(set(str(v) for v in value)))
    return quote(str(value), safe="")


def make_cache_key(operation: str, *args) -> str:
    """
    Generate a cache key from an operation name and its parameters

    Args:
        operation: Operation name, used as the key namespace
        *args: Every parameter that affects the result, in a fixed order

    Each part is percent-encoded so the separator cannot occur inside it,
    e.g. ("A", "B:C") and ("A:B", "C") produce different keys. Collections
    are treated as sets.

    Returns:
        Cache key string
    """
    return KEY_SEPARATOR.join([quote(operation, safe="")] + [_key_part(arg) for arg in args])


class QueryCache:
    """In-memory key -> CacheEntry store shared by all request threads."""

    def __init__(self, default_ttl: float = 5, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._last_sweep = clock()
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "expired": 0,
        }

    def get(self, key: str, kind: str) -> Optional[CacheEntry]:
        """Return the live entry for key, dropping it if it has expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(now):
                # Passive expiry, only when a reader finds it stale
                del self._entries[key]
                self._stats["expired"] += 1
                return None
        if entry.kind != kind:
            logger.warning(f"Cache kind mismatch for {key}: stored {entry.kind}, expected {kind}")
            return None
        return entry

    def _sweep(self, now: float) -> int:
        """Drop expired entries, caller holds the lock"""
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        self._stats["expired"] += len(expired)
        self._last_sweep = now
        return len(expired)

    def set(self, key: str, value: Any, kind: str, ttl: Optional[float] = None) -> None:
        """
        Store value under key. Writers also drop entries that expired without
        being read again, at most once per sweep_interval.
        """
        now = self._clock()
        entry = CacheEntry(value=value, kind=kind, inserted_at=now, ttl=self.default_ttl if ttl is None else ttl)
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval:
                swept = self._sweep(now)
                if swept:
                    logger.debug(f"Cache swept {swept} expired entries")
            self._entries[key] = entry
            self._stats["sets"] += 1
        logger.debug(f"Cache SET: {key} (TTL: {entry.ttl}s)")

    def get_or_compute(self, key: str, compute: Callable[[], Any], kind: str, ttl: Optional[float] = None) -> Any:
        """
        Return the cached value for key, or compute, store and return it.

        Concurrent misses on the same key may all run compute; the last one
        to finish wins. Nothing is stored when compute raises or returns None.
        """
        operation = key.split(KEY_SEPARATOR, 1)[0]

        entry = self.get(key, kind)
        if entry is not None:
            with self._lock:
                self._stats["hits"] += 1
            cache_requests_total.labels(operation=operation, result="hit").inc()
            logger.debug(f"Cache HIT: {key}")
            return entry.value

        with self._lock:
            self._stats["misses"] += 1
        cache_requests_total.labels(operation=operation, result="miss").inc()
        logger.debug(f"Cache MISS: {key}")

        value = compute()
        if value is not None:
            self.set(key, value, kind, ttl)
        return value

    def get_stats(self) -> Dict:
        """Get cache statistics (hits, misses, sets, expired) and live entry count"""
        with self._lock:
            return {**self._stats, "entries": len(self._entries)}

    def clear(self) -> None:
        """Drop every entry and reset statistics"""
        with self._lock:
            self._entries.clear()
            for name in self._stats:
                self._stats[name] = 0

    def __len__(self):
        with self._lock:
            return len(self._entries)
