"""Cache management endpoints for admin API."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ragcache.api.admin.dependencies import get_cache_service, get_embedding_service
from ragcache.api.security import verify_admin_bearer_token
from ragcache.core.errors import CacheStoreError, EmbeddingError
from ragcache.core.logging import get_logger
from ragcache.services.embeddings import EmbeddingService
from ragcache.services.unified_cache import (
    DocumentCache,
    SearchCache,
    TieredCacheService,
    warm_cache,
)

logger = get_logger(__name__)
router = APIRouter(tags=["cache"], dependencies=[Depends(verify_admin_bearer_token)])


class CacheOperationRequest(BaseModel):
    """Cache operation request."""
    operation: str = Field(..., description="Operation: warm, invalidate_user")
    queries: Optional[List[str]] = Field(None, description="Texts to pre-embed (for warm)")
    user_id: Optional[str] = Field(None, description="User whose entries to drop (for invalidate_user)")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _store_unavailable(e: Exception) -> HTTPException:
    logger.error(f"Cache store unavailable: {e}")
    return HTTPException(status_code=503, detail="Cache store unavailable")


@router.get("/cache/stats")
async def get_cache_stats(
    cache_service: TieredCacheService = Depends(get_cache_service),
) -> Dict[str, Any]:
    """Get cache statistics."""
    return {
        "message": "Cache statistics retrieved",
        "stats": cache_service.get_stats(),
        "timestamp": _timestamp(),
    }


@router.post("/cache/stats/reset")
async def reset_cache_stats(
    cache_service: TieredCacheService = Depends(get_cache_service),
) -> Dict[str, Any]:
    """Reset cache statistics counters."""
    cache_service.reset_stats()
    return {
        "message": "Cache statistics reset",
        "timestamp": _timestamp(),
    }


@router.delete("/cache")
async def clear_cache(
    tag: Optional[str] = None,
    pattern: Optional[str] = None,
    namespace: Optional[str] = None,
    user_id: Optional[str] = None,
    cache_service: TieredCacheService = Depends(get_cache_service),
    embedding_service: EmbeddingService = Depends(get_embedding_service),
) -> Dict[str, Any]:
    """Clear cache entries by tag, pattern or namespace, or everything.

    Only the first of ``tag``, ``pattern`` and ``namespace`` given is used.
    """
    try:
        if tag:
            cleared_count = await cache_service.invalidate_by_tag(tag)
            operation = "clear_by_tag"
        elif pattern:
            cleared_count = await cache_service.invalidate_by_pattern(pattern)
            operation = "clear_by_pattern"
        elif namespace:
            if namespace == "embeddings":
                cleared_count = await embedding_service.clear_embedding_cache()
            elif namespace == "search":
                cleared_count = await SearchCache(cache_service).invalidate_all()
            elif namespace == "documents":
                if not user_id:
                    raise HTTPException(
                        status_code=400, detail="user_id required for documents namespace"
                    )
                cleared_count = await DocumentCache(cache_service).invalidate_for_user(user_id)
            else:
                raise HTTPException(status_code=400, detail=f"Unknown namespace: {namespace}")
            operation = "clear_namespace"
        else:
            cleared_count = await cache_service.clear_all()
            operation = "clear_all"

    except (CacheStoreError, EmbeddingError) as e:
        raise _store_unavailable(e)

    logger.info(f"Admin cache {operation}: {cleared_count} entries cleared")
    return {
        "message": "Cache cleared successfully",
        "operation": operation,
        "cleared_count": cleared_count,
        "timestamp": _timestamp(),
    }


@router.post("/cache")
async def cache_operation(
    cache_request: CacheOperationRequest,
    cache_service: TieredCacheService = Depends(get_cache_service),
    embedding_service: EmbeddingService = Depends(get_embedding_service),
) -> Dict[str, Any]:
    """Run a cache operation (warm, invalidate_user)."""
    if cache_request.operation == "warm":
        if not cache_request.queries:
            raise HTTPException(status_code=400, detail="queries required for warm operation")

        warmers = [
            (lambda text=text: embedding_service.generate_embedding(text))
            for text in cache_request.queries
        ]
        succeeded, failed = await warm_cache(warmers)

        return {
            "message": "Cache warming completed",
            "operation": "warm",
            "succeeded": succeeded,
            "failed": failed,
            "timestamp": _timestamp(),
        }

    elif cache_request.operation == "invalidate_user":
        if not cache_request.user_id:
            raise HTTPException(status_code=400, detail="user_id required for user invalidation")

        try:
            cleared_count = await SearchCache(cache_service).invalidate_for_user(cache_request.user_id)
        except CacheStoreError as e:
            raise _store_unavailable(e)

        return {
            "message": "User cache invalidated",
            "operation": "invalidate_user",
            "cleared_count": cleared_count,
            "user_id": cache_request.user_id,
            "timestamp": _timestamp(),
        }

    raise HTTPException(status_code=400, detail=f"Unknown operation: {cache_request.operation}")
