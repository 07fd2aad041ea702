"""
Dependency Injection Container

Centralized construction of the pipeline components. Components are
created lazily, once per container, and torn down by reset().
"""

import logging
from typing import Dict, Optional

from tennis_pipeline.analytics.performance import PerformanceAnalyzer
from tennis_pipeline.cleaning.cleaner import CleaningOptions, MatchCleaner
from tennis_pipeline.core.constants import DEFAULT_ANALYTICS_CACHE_TTL_MINUTES
from tennis_pipeline.core.interfaces import ICacheStorage
from tennis_pipeline.data.historical_loader import HistoricalDataLoader
from tennis_pipeline.formatting.formatter import MatchFormatter
from tennis_pipeline.infrastructure.cache import InMemoryCacheStorage
from tennis_pipeline.infrastructure.settings import Settings
from tennis_pipeline.services.match_service import MatchService
from tennis_pipeline.services.player_service import PlayerService
from tennis_pipeline.validation.validator import MatchValidator

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency Injection Container.

    Each cache-owning component gets its own cache instance so that clearing
    one never affects another.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize dependency container.

        Args:
            settings: Pipeline settings (read from the environment if None)
        """
        self.settings = settings or Settings.from_env()

        # Lazy initialization
        self._cache_storage: Optional[ICacheStorage] = None
        self._historical_loader: Optional[HistoricalDataLoader] = None
        self._cleaner: Optional[MatchCleaner] = None
        self._validator: Optional[MatchValidator] = None
        self._formatter: Optional[MatchFormatter] = None
        self._analyzer: Optional[PerformanceAnalyzer] = None
        self._match_service: Optional[MatchService] = None
        self._player_service: Optional[PlayerService] = None

    # Infrastructure

    def cache_storage(self) -> ICacheStorage:
        """Cache backing the historical loader."""
        if self._cache_storage is None:
            self._cache_storage = InMemoryCacheStorage(self.settings.data_cache_ttl_minutes)
        return self._cache_storage

    def historical_loader(self) -> HistoricalDataLoader:
        if self._historical_loader is None:
            self._historical_loader = HistoricalDataLoader(
                data_dir=self.settings.data_dir,
                tour=self.settings.tour,
                cache=self.cache_storage()
            )
            logger.info(f"Historical data: {self.settings.data_dir} ({self.settings.tour.upper()})")
        return self._historical_loader

    # Pipeline components

    def cleaner(self) -> MatchCleaner:
        if self._cleaner is None:
            self._cleaner = MatchCleaner(
                CleaningOptions(default_location=self.settings.default_location)
            )
        return self._cleaner

    def validator(self) -> MatchValidator:
        if self._validator is None:
            ttl = self.settings.validation_cache_ttl_minutes
            self._validator = MatchValidator(cache=InMemoryCacheStorage(ttl), ttl_minutes=ttl)
        return self._validator

    def formatter(self) -> MatchFormatter:
        if self._formatter is None:
            self._formatter = MatchFormatter()
        return self._formatter

    def analyzer(self) -> PerformanceAnalyzer:
        if self._analyzer is None:
            self._analyzer = PerformanceAnalyzer(
                cache=InMemoryCacheStorage(DEFAULT_ANALYTICS_CACHE_TTL_MINUTES)
            )
        return self._analyzer

    # Domain Services

    def match_service(self) -> MatchService:
        if self._match_service is None:
            self._match_service = MatchService(
                cleaner=self.cleaner(),
                validator=self.validator(),
                formatter=self.formatter(),
                loader=self.historical_loader()
            )
        return self._match_service

    def player_service(self) -> PlayerService:
        if self._player_service is None:
            self._player_service = PlayerService(
                loader=self.historical_loader(),
                analyzer=self.analyzer()
            )
        return self._player_service

    # Cache management

    def caches(self) -> Dict[str, ICacheStorage]:
        """Named caches of the cache-owning components."""
        return {
            "data": self.historical_loader().cache,
            "validation": self.validator().cache,
            "analytics": self.analyzer().cache,
        }

    def clear_caches(self) -> None:
        """Clear every cache owned by components created so far."""
        if self._historical_loader is not None:
            self._historical_loader.clear_cache()
        elif self._cache_storage is not None:
            self._cache_storage.clear()
        if self._validator is not None:
            self._validator.clear_cache()
        if self._analyzer is not None:
            self._analyzer.clear_cache()

    # Reset methods (useful for testing)

    def reset(self) -> None:
        """Clear caches and drop all component instances."""
        self.clear_caches()
        self._cache_storage = None
        self._historical_loader = None
        self._cleaner = None
        self._validator = None
        self._formatter = None
        self._analyzer = None
        self._match_service = None
        self._player_service = None


# Global container instance
_container: Optional[DependencyContainer] = None


def get_container(settings: Optional[Settings] = None) -> DependencyContainer:
    """
    Get or create global dependency container.

    `settings` only applies when the container is first created.
    """
    global _container
    if _container is None:
        _container = DependencyContainer(settings=settings)
    return _container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    if _container:
        _container.reset()
    _container = None
