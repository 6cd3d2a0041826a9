"""Cache-aside decorator and cache warming."""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Tuple

from ragcache.core.logging import get_logger
from ragcache.services.unified_cache.models import CacheNamespace
from ragcache.services.unified_cache.tiered_cache import TieredCacheService

logger = get_logger(__name__)


def cached(
    cache: TieredCacheService,
    key_builder: Callable[..., str],
    *,
    namespace: Optional[CacheNamespace] = None,
    ttl: Optional[int] = None,
    tags: Optional[Iterable[str]] = None
):
    """Wrap an async function with cache-aside over the tiered cache.

    ``key_builder`` receives the same arguments as the wrapped function.
    Store errors propagate, as with the raw cache API.

    Usage:
        @cached(cache, lambda doc_id: f"summary:{doc_id}", namespace=CacheNamespace.API)
        async def summarize(doc_id: str) -> dict:
            ...
    """
    tag_list = list(tags or [])

    def decorator(fn: Callable[..., Awaitable[Any]]):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            key = key_builder(*args, **kwargs)

            hit = await cache.get(key, namespace=namespace, ttl=ttl)
            if hit is not None:
                return hit

            result = await fn(*args, **kwargs)
            await cache.set(key, result, namespace=namespace, ttl=ttl, tags=tag_list)
            return result

        return wrapper

    return decorator


async def warm_cache(warmers: Sequence[Callable[[], Awaitable[Any]]]) -> Tuple[int, int]:
    """Run warming functions concurrently.

    Failures are logged, never raised.

    Returns:
        Tuple of (succeeded, failed) counts.
    """
    logger.info("Starting cache warming...")

    results = await asyncio.gather(*(warmer() for warmer in warmers), return_exceptions=True)
    errors = [result for result in results if isinstance(result, Exception)]
    succeeded = len(results) - len(errors)

    logger.info(f"Cache warming completed: {succeeded} successful, {len(errors)} failed")
    for error in errors:
        logger.error(f"Cache warming error: {error}")

    return succeeded, len(errors)
