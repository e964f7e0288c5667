"""Thread-safe LRU cache for compiled message templates.

Identical template text under the same locale is compiled once and the
compiled message reused, whether it came from a translation table, a
call-site fallback, or a fallback-policy result.

Architecture:
    - Thread-safe using threading.RLock
    - LRU eviction via OrderedDict
    - Key: (locale, template, use_isolating)
    - Hit/miss counters for metrics

Python 3.13+.
"""

from __future__ import annotations

from collections import OrderedDict
from threading import RLock
from typing import TYPE_CHECKING

from chunki18n.constants import DEFAULT_CACHE_SIZE

if TYPE_CHECKING:
    from chunki18n.runtime.compiler import CompiledTranslation

__all__ = ["MessageCache"]

type _CacheKey = tuple[str, str, bool]


class MessageCache:
    """Thread-safe LRU cache of compiled messages.

    Transparent to caller: ``get`` returns None on a miss.

    Attributes:
        maxsize: Maximum number of cache entries
    """

    __slots__ = ("_cache", "_hits", "_lock", "_maxsize", "_misses")

    def __init__(self, maxsize: int = DEFAULT_CACHE_SIZE) -> None:
        """Initialize message cache.

        Args:
            maxsize: Maximum number of entries (default: 4096)
        """
        if maxsize <= 0:
            msg = "maxsize must be positive"
            raise ValueError(msg)

        self._cache: OrderedDict[_CacheKey, CompiledTranslation] = OrderedDict()
        self._maxsize = maxsize
        self._lock = RLock()
        self._hits = 0
        self._misses = 0

    @property
    def maxsize(self) -> int:
        """Maximum number of cache entries."""
        return self._maxsize

    def get(self, locale: str, template: str, use_isolating: bool) -> CompiledTranslation | None:
        """Get compiled message if cached, marking it most recently used."""
        key = (locale, template, use_isolating)
        with self._lock:
            compiled = self._cache.get(key)
            if compiled is None:
                self._misses += 1
                return None
            self._cache.move_to_end(key)
            self._hits += 1
            return compiled

    def put(
        self, locale: str, template: str, use_isolating: bool, compiled: CompiledTranslation
    ) -> None:
        """Store compiled message, evicting the least recently used entry when full."""
        key = (locale, template, use_isolating)
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._maxsize:
                self._cache.popitem(last=False)
            self._cache[key] = compiled

    def clear(self) -> None:
        """Clear all entries and reset metrics."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> dict[str, int | float]:
        """Get cache statistics.

        Returns:
            Dict with keys:
            - size (int): Current number of cached entries
            - maxsize (int): Maximum cache capacity
            - hits (int): Number of cache hits
            - misses (int): Number of cache misses
            - hit_rate (float): Hit rate as percentage (0.0-100.0)
        """
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._cache),
                "maxsize": self._maxsize,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": (self._hits / total * 100) if total > 0 else 0.0,
            }

    def __len__(self) -> int:
        """Number of cached entries."""
        with self._lock:
            return len(self._cache)
