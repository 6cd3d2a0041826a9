"""Dependency injection container for service management.

This module provides a centralized container for the cache and embedding
services, their lifecycle, and dependencies. Routes reach the services
through ``app.state.container`` instead of module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from ragcache.core.logging import get_logger

if TYPE_CHECKING:
    from ragcache.core.config import Settings
    from ragcache.services.embeddings import EmbeddingProvider, EmbeddingService
    from ragcache.services.unified_cache import TieredCacheService
    from ragcache.services.unified_cache.backends import IRemoteStore

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Services are accessed through properties that raise
    ServiceNotInitializedError if accessed before initialization.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        cache = container.cache_service
        embeddings = container.embedding_service

        await container.shutdown()
    """

    _backend: Optional[IRemoteStore] = field(default=None, repr=False)
    _cache_service: Optional[TieredCacheService] = field(default=None, repr=False)
    _embedding_provider: Optional[EmbeddingProvider] = field(default=None, repr=False)
    _embedding_service: Optional[EmbeddingService] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings) -> None:
        """Initialize all services.

        Args:
            settings: Application settings.

        Raises:
            Exception: If any service fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            # Import here to avoid circular imports
            from ragcache.services.embeddings import (
                EmbeddingOptions,
                EmbeddingService,
                PipelineConfig,
            )
            from ragcache.services.unified_cache import CacheConfig, TieredCacheService
            from ragcache.services.unified_cache.backends import MemoryBackend, RedisBackend

            # Remote tier
            if self._backend is None:
                if settings.cache_backend == "memory":
                    self._backend = MemoryBackend()
                elif settings.cache_backend == "redis":
                    self._backend = RedisBackend(settings.redis_url)
                else:
                    raise ValueError(f"Unknown cache backend: {settings.cache_backend}")
            await self._backend.connect()
            logger.info(f"Cache backend connected ({settings.cache_backend})")

            # Tiered cache
            if self._cache_service is None:
                self._cache_service = TieredCacheService(
                    self._backend,
                    CacheConfig(
                        key_prefix=settings.cache_key_prefix,
                        default_ttl=settings.cache_default_ttl,
                        max_memory_entries=settings.cache_max_memory_entries,
                        cleanup_interval=settings.cache_cleanup_interval,
                    ),
                )
            self._cache_service.start()
            logger.info("Cache service initialized")

            # Embedding pipeline
            if self._embedding_provider is None:
                self._embedding_provider = self._create_embedding_provider(settings)
            if self._embedding_service is None:
                self._embedding_service = EmbeddingService(
                    self._embedding_provider,
                    self._cache_service,
                    config=PipelineConfig.from_settings(settings),
                    default_options=EmbeddingOptions.from_settings(settings),
                )
            logger.info("Embedding service initialized")

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    @staticmethod
    def _create_embedding_provider(settings: Settings) -> EmbeddingProvider:
        """Build the configured embedding provider."""
        from ragcache.services.embeddings import (
            LangChainEmbeddingProvider,
            OpenAIEmbeddingProvider,
        )

        if settings.embedding_provider == "openai":
            return OpenAIEmbeddingProvider(settings.openai_api_key)
        if settings.embedding_provider == "langchain":
            from langchain_openai import OpenAIEmbeddings

            return LangChainEmbeddingProvider(OpenAIEmbeddings(
                model=settings.openai_embedding_model,
                dimensions=settings.openai_embedding_dimensions,
                api_key=settings.openai_api_key,
            ))
        raise ValueError(f"Unknown embedding provider: {settings.embedding_provider}")

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        # Stop the sweeper
        if self._cache_service:
            try:
                await self._cache_service.stop()
            except Exception as e:
                logger.error(f"Error stopping cache sweeper: {e}")

        # Close provider client
        if self._embedding_provider:
            try:
                await self._embedding_provider.close()
                logger.info("Embedding provider closed")
            except Exception as e:
                logger.error(f"Error closing embedding provider: {e}")

        # Disconnect cache
        if self._backend:
            try:
                await self._backend.disconnect()
                logger.info("Cache backend disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting cache: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def backend(self) -> IRemoteStore:
        """Get the remote store backend."""
        if self._backend is None:
            raise ServiceNotInitializedError("backend")
        return self._backend

    @property
    def cache_service(self) -> TieredCacheService:
        """Get the cache service instance."""
        if self._cache_service is None:
            raise ServiceNotInitializedError("cache_service")
        return self._cache_service

    @property
    def embedding_service(self) -> EmbeddingService:
        """Get the embedding service instance."""
        if self._embedding_service is None:
            raise ServiceNotInitializedError("embedding_service")
        return self._embedding_service

    def set_backend(self, backend: IRemoteStore) -> None:
        """Set the remote store backend (for testing)."""
        self._backend = backend

    def set_cache_service(self, service: TieredCacheService) -> None:
        """Set the cache service (for testing)."""
        self._cache_service = service

    def set_embedding_provider(self, provider: EmbeddingProvider) -> None:
        """Set the embedding provider (for testing)."""
        self._embedding_provider = provider

    def set_embedding_service(self, service: EmbeddingService) -> None:
        """Set the embedding service (for testing)."""
        self._embedding_service = service


# Module-level container instance
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global service container instance.

    Raises:
        RuntimeError: If the container hasn't been created yet.
    """
    global _container
    if _container is None:
        raise RuntimeError(
            "Service container not created. Call set_container() first "
            "or use the FastAPI app.state.container."
        )
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Set the global service container instance."""
    global _container
    _container = container


def create_container() -> ServiceContainer:
    """Create a new service container instance.

    This is useful for creating isolated containers in tests.
    """
    return ServiceContainer()
