"""
Core Interfaces - Abstract base classes defining contracts

The loaders, validator and analyzer depend on this abstraction rather than
a concrete cache, so tests and hosts can inject their own backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional


class ICacheStorage(ABC):
    """
    Interface for cache storage.

    Allows different cache backends (memory, file, Redis).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get cached value."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_minutes: Optional[float] = None) -> None:
        """Set cached value with optional TTL."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete cached value."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached values."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Get all cache keys."""
        pass

    @abstractmethod
    def is_valid(self, key: str) -> bool:
        """Check if cached value is still valid."""
        pass

    @abstractmethod
    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl_minutes: Optional[float] = None
    ) -> Any:
        """
        Return the cached value, computing and storing it on a miss.

        The lookup, the computation and the write happen as one step.
        """
        pass
