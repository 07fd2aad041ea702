"""
In-memory cache storage.

TTL cache used by the historical loader, the validator and the analyzer.
Each instance owns one map guarded by one lock; instances share nothing.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from tennis_pipeline.core.interfaces import ICacheStorage
from tennis_pipeline.core.constants import DEFAULT_DATA_CACHE_TTL_MINUTES

logger = logging.getLogger(__name__)


class InMemoryCacheStorage(ICacheStorage):
    """
    Process-local cache storage with per-entry TTL.

    Entries are stored as {"data", "timestamp", "ttl_minutes"} and expire
    lazily on access.
    """

    def __init__(
        self,
        default_ttl_minutes: float = DEFAULT_DATA_CACHE_TTL_MINUTES,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize in-memory cache storage.

        Args:
            default_ttl_minutes: Default TTL for cache entries
            clock: Source of seconds, injectable for tests
        """
        self.default_ttl_minutes = default_ttl_minutes
        self._clock = clock
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if valid."""
        with self._lock:
            if not self.is_valid(key):
                self._cache.pop(key, None)
                return None
            return self._cache[key]["data"]

    def set(self, key: str, value: Any, ttl_minutes: Optional[float] = None) -> None:
        """Set cached value with TTL."""
        ttl = ttl_minutes if ttl_minutes is not None else self.default_ttl_minutes
        with self._lock:
            self._cache[key] = {
                "data": value,
                "timestamp": self._clock(),
                "ttl_minutes": ttl
            }

    def delete(self, key: str) -> None:
        """Delete cached value."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached values."""
        with self._lock:
            self._cache = {}

    def keys(self) -> List[str]:
        """Get all valid cache keys."""
        with self._lock:
            self._clean_expired()
            return list(self._cache.keys())

    def is_valid(self, key: str) -> bool:
        """Check if cached value is still valid."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            age_seconds = self._clock() - entry["timestamp"]
            return age_seconds < entry["ttl_minutes"] * 60

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl_minutes: Optional[float] = None
    ) -> Any:
        """Return the cached value or compute, store and return it."""
        with self._lock:
            if self.is_valid(key):
                return self._cache[key]["data"]
            value = factory()
            self.set(key, value, ttl_minutes)
            return value

    def __len__(self) -> int:
        return len(self.keys())

    def _clean_expired(self) -> None:
        """Remove expired entries."""
        expired_keys = [k for k in self._cache if not self.is_valid(k)]
        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.debug(f"Evicted {len(expired_keys)} expired cache entries")
