"""
In-memory caches shared across requests

GeologyScoreCache - geology scores keyed by coordinates rounded to 4 decimals
GeospatialCache   - remote responses keyed by URL + params, with per-entry TTL
"""

import threading
import time
import logging
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from mudhumeni_core.utils.errors import CacheError
from mudhumeni_core.config.settings import CACHE_CONFIG, GEOLOGY_CACHE_PRECISION

logger = logging.getLogger(__name__)

_MISSING = object()


class GeospatialCache:
    """
    Thread-safe key/value cache with a TTL per entry.
    Expired entries are dropped lazily on access, and swept in bulk at most
    once per sweep interval when entries are written.
    """

    def __init__(self, default_ttl_ms: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sweep_interval_ms: float = CACHE_CONFIG['sweep_interval_ms']):
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._sweep_interval = sweep_interval_ms / 1000.0
        self._next_sweep = clock() + self._sweep_interval

    def _expiry(self, ttl_ms: Optional[float]) -> Optional[float]:
        ttl_ms = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl_ms is None:
            return None
        if ttl_ms <= 0:
            raise CacheError(f"TTL must be positive, got {ttl_ms}")
        return self._clock() + ttl_ms / 1000.0

    def _is_expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def set(self, key: Hashable, value: Any, ttl_ms: Optional[float] = None) -> None:
        expires_at = self._expiry(ttl_ms)
        with self._lock:
            self._maybe_sweep()
            self._entries[key] = (value, expires_at)

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            value, expires_at = entry
            if self._is_expired(expires_at):
                del self._entries[key]
                return default
            return value

    def has(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def set_if_absent(self, key: Hashable, value: Any, ttl_ms: Optional[float] = None) -> Any:
        """Store value unless a live entry exists; return whichever value is cached"""
        expires_at = self._expiry(ttl_ms)
        with self._lock:
            self._maybe_sweep()
            entry = self._entries.get(key, _MISSING)
            if entry is not _MISSING and not self._is_expired(entry[1]):
                return entry[0]
            self._entries[key] = (value, expires_at)
            return value

    def _maybe_sweep(self) -> None:
        # caller holds the lock
        now = self._clock()
        if now >= self._next_sweep:
            self._next_sweep = now + self._sweep_interval
            self._evict_expired()

    def _evict_expired(self) -> int:
        expired = [key for key, (_, expires_at) in self._entries.items()
                   if self._is_expired(expires_at)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")
        return len(expired)

    def cleanup(self) -> int:
        """Drop every expired entry, returning how many were removed"""
        with self._lock:
            return self._evict_expired()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        self.cleanup()
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()


class GeologyScoreCache(GeospatialCache):
    """
    Geology scores keyed by (lat, lon) rounded to a fixed precision.
    Entries never expire unless a TTL is configured.
    """

    def __init__(self, precision: int = GEOLOGY_CACHE_PRECISION,
                 default_ttl_ms: Optional[float] = CACHE_CONFIG['geology_ttl_ms'],
                 clock: Callable[[], float] = time.monotonic,
                 sweep_interval_ms: float = CACHE_CONFIG['sweep_interval_ms']):
        super().__init__(default_ttl_ms=default_ttl_ms, clock=clock, sweep_interval_ms=sweep_interval_ms)
        self.precision = precision

    def make_key(self, latitude: float, longitude: float) -> Tuple[float, float]:
        try:
            return (round(float(latitude), self.precision), round(float(longitude), self.precision))
        except (TypeError, ValueError) as e:
            raise CacheError(f"Invalid coordinate key ({latitude}, {longitude}): {e}") from e

    def _key(self, key: Hashable) -> Hashable:
        if isinstance(key, tuple) and len(key) == 2:
            return self.make_key(*key)
        raise CacheError(f"Geology cache keys must be (lat, lon) pairs, got {key!r}")

    def set(self, key, value, ttl_ms=None):
        super().set(self._key(key), value, ttl_ms)

    def get(self, key, default=None):
        return super().get(self._key(key), default)

    def delete(self, key):
        return super().delete(self._key(key))

    def set_if_absent(self, key, value, ttl_ms=None):
        return super().set_if_absent(self._key(key), value, ttl_ms)


# Process-wide instances
GEOLOGY_SCORE_CACHE = GeologyScoreCache()
GEOSPATIAL_CACHE = GeospatialCache()


def geospatial_ttl_ms(category: str) -> Optional[float]:
    """TTL for a geospatial cache category, or None if unknown"""
    return CACHE_CONFIG['geospatial_ttl_ms'].get(category)
