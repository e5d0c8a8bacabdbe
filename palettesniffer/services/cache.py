"""
Palette Sniffer Result Cache
In-memory TTL cache for URL palettes with oldest-first eviction.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger


DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_ENTRIES = 100


@dataclass
class CacheEntry:
    value: Any
    created_at: float


class ResultCache:
    """
    TTL cache keyed by normalized URL.

    Entries older than ``ttl_seconds`` are treated as missing and evicted on
    read. Once more than ``max_entries`` are stored, the single entry inserted
    first is evicted. Re-setting a key refreshes its value and timestamp but
    not its insertion position.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 max_entries: int = DEFAULT_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.stats = {'hits': 0, 'misses': 0, 'evictions': 0, 'expirations': 0}

    def get(self, key: str) -> Optional[Any]:
        """Get a live value; expired entries are removed."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats['misses'] += 1
                return None

            if self._clock() - entry.created_at < self.ttl_seconds:
                self.stats['hits'] += 1
                return entry.value

            del self._entries[key]
            self.stats['expirations'] += 1
            self.stats['misses'] += 1
            return None

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting the oldest entry when over capacity."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=self._clock())

            if len(self._entries) > self.max_entries:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                self.stats['evictions'] += 1
                logger.debug(f"Evicted oldest cache entry {oldest_key}")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries and reset stats."""
        with self._lock:
            self._entries.clear()
            for key in self.stats:
                self.stats[key] = 0

    def cleanup_expired(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items()
                       if now - entry.created_at >= self.ttl_seconds]
            for key in expired:
                del self._entries[key]
            self.stats['expirations'] += len(expired)

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            lookups = self.stats['hits'] + self.stats['misses']
            return {
                'size': len(self._entries),
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl_seconds,
                'stats': self.stats.copy(),
                'hit_rate': self.stats['hits'] / lookups if lookups > 0 else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
