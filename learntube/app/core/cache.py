"""In-process response cache for YouTube API results.

Entries expire lazily: an expired entry is treated as absent on read and
removed then. ``cleanup_expired`` sweeps the whole map for memory hygiene.
The cache can be bounded by entry count, evicting the least recently used
entry when full.
"""

import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from learntube.app.core.logging import get_logger

logger = get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class _CacheEntry:
    """Internal cache entry with TTL tracking."""

    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """Check if the entry has outlived its TTL."""
        return now - self.stored_at > self.ttl


def normalize_param(value: Any) -> str:
    """Normalize one cache key component.

    Strings are trimmed and whitespace-collapsed. Case is kept because ids
    such as YouTube video ids are case-sensitive.
    """
    if isinstance(value, str):
        return _WHITESPACE_RE.sub(" ", value.strip())
    return str(value)


def normalize_query(text: str) -> str:
    """Normalize free search text so that "  Python   Basics" and "python basics" collide."""
    return normalize_param(text).lower()


def make_cache_key(kind: str, *params: Any) -> str:
    """Build a deterministic cache key from an operation kind and its parameters.

    Examples:
        >>> make_cache_key("search", normalize_query(" Python "), 20)
        'search:python:20'
        >>> make_cache_key("trending", 12)
        'trending:12'
    """
    return ":".join([kind, *(normalize_param(p) for p in params)])


class ResponseCache:
    """Thread-safe in-memory cache with TTL and optional LRU bound.

    Data is lost when the process restarts. Reads may observe a value that a
    concurrent writer is about to replace; the last write wins.

    Example:
        >>> cache = ResponseCache(max_entries=1000)
        >>> cache.put("search:python:20", videos, ttl=3600)
        >>> cache.get("search:python:20")
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            max_entries: Maximum number of entries, or None for unbounded.
            clock: Monotonic time source in seconds, injectable for tests.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._data: "OrderedDict[str, _CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Retrieve a value from the cache.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value, or None if not found or expired.
        """
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return entry.value

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store a value, replacing any earlier entry for the key.

        Args:
            key: The cache key.
            value: The value to store.
            ttl: Time-to-live in seconds.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        evicted: list[str] = []
        with self._lock:
            self._data[key] = _CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)
            self._data.move_to_end(key)
            if self._max_entries is not None:
                while len(self._data) > self._max_entries:
                    evicted.append(self._data.popitem(last=False)[0])
        for old_key in evicted:
            logger.debug(f"Evicted least recently used cache entry: {old_key}")

    def delete(self, key: str) -> None:
        """Remove a value from the cache."""
        with self._lock:
            self._data.pop(key, None)

    def invalidate_all(self) -> int:
        """Drop every entry.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            count = len(self._data)
            self._data.clear()
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries from the cache.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired_keys = [key for key, entry in self._data.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._data[key]
            return len(expired_keys)

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
