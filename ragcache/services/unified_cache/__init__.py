"""Tiered cache system.

Tiers:
- L1: bounded in-process map, swept periodically
- L2: shared remote store (Redis), with tag sets for bulk invalidation

Namespaces (default TTL):
- embeddings (1 hour), search (5 minutes), documents (30 minutes),
  conversations (24 hours), auth (15 minutes), api (1 minute)

Usage:
    from ragcache.services.unified_cache import TieredCacheService, CacheNamespace

    cache = TieredCacheService(backend)
    cache.start()

    await cache.set("doc:42", doc, namespace=CacheNamespace.DOCUMENTS, tags=["documents"])
    doc = await cache.get("doc:42", namespace=CacheNamespace.DOCUMENTS)
    await cache.invalidate_by_tag("documents")
"""

from ragcache.services.unified_cache.key_generator import CacheKeyGenerator
from ragcache.services.unified_cache.models import (
    CacheConfig,
    CacheEntry,
    CacheNamespace,
    CacheStats,
    NAMESPACE_TTLS,
)
from ragcache.services.unified_cache.tag_index import TagIndex
from ragcache.services.unified_cache.tiered_cache import TieredCacheService
from ragcache.services.unified_cache.namespaced import (
    DocumentCache,
    EmbeddingCache,
    SearchCache,
)
from ragcache.services.unified_cache.helpers import cached, warm_cache

__all__ = [
    "CacheKeyGenerator",
    "CacheConfig",
    "CacheEntry",
    "CacheNamespace",
    "CacheStats",
    "NAMESPACE_TTLS",
    "TagIndex",
    "TieredCacheService",
    "DocumentCache",
    "EmbeddingCache",
    "SearchCache",
    "cached",
    "warm_cache",
]
