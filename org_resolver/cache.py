"""
Bounded in-memory cache with time-to-live expiry.

One cache abstraction shared by the resolver's result cache, the structural
analysis cache and the knowledge base query cache. Entries expire lazily
(checked on read) and the oldest entry is evicted once capacity is reached.
Nothing here touches disk.
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from org_resolver.config import CacheConfig

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    created_at: float


class TTLCache:
    """Lock-guarded cache with capacity and TTL bounds."""

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        """
        Initialize cache.

        Args:
            capacity: Maximum number of live entries
            ttl_seconds: Entries older than this are never returned
            clock: Monotonic time source (injectable for tests)
            name: Label used in log messages and stats
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._lock = Lock()
        self._entries: OrderedDict[Hashable, _Entry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> "TTLCache":
        return cls(
            capacity=config.capacity,
            ttl_seconds=config.ttl_seconds,
            clock=clock,
            name=name,
        )

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Get a value from cache, or default if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if self._expired(entry, self._clock()):
                del self._entries[key]
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting expired then oldest entries when full."""
        with self._lock:
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                self._purge_expired(now)
                while len(self._entries) >= self.capacity:
                    self._entries.popitem(last=False)
                    self._evictions += 1
            self._entries[key] = _Entry(value=value, created_at=now)

    def delete(self, key: Hashable) -> bool:
        """Delete a value from cache."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove every entry, returning how many were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.debug(f"Cleared {count} entries from {self.name}")
        return count

    def _purge_expired(self, now: float) -> None:
        stale = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in stale:
            del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry, self._clock())

    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "name": self.name,
                "size": len(self._entries),
                "capacity": self.capacity,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            }
