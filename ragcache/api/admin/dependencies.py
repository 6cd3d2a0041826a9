"""Shared dependencies for admin API endpoints."""

from fastapi import Request

from ragcache.services.embeddings import EmbeddingService
from ragcache.services.unified_cache import TieredCacheService


async def get_cache_service(request: Request) -> TieredCacheService:
    """Get cache service instance from container."""
    return request.app.state.container.cache_service


async def get_embedding_service(request: Request) -> EmbeddingService:
    """Get embedding service instance from container."""
    return request.app.state.container.embedding_service
