"""Namespace-scoped cache facades.

Each facade fixes the namespace, TTL and tags used for one kind of data,
so callers never build keys or tag names by hand:

    embeddings = EmbeddingCache(cache)
    vector = await embeddings.get("some text", model, dimensions)

    search = SearchCache(cache)
    await search.set("rate for meals", user_id="u1", params={"k": 5}, results=hits)
    await search.invalidate_for_user("u1")
"""

import json
from typing import Optional, Any, Dict, List

from ragcache.services.unified_cache.models import CacheNamespace
from ragcache.services.unified_cache.tiered_cache import TieredCacheService

EMBEDDINGS_TAG = "embeddings"
SEARCH_TAG = "search"
DOCUMENTS_TAG = "documents"


def user_tag(user_id: str) -> str:
    """Tag grouping every entry that belongs to one user."""
    return f"user:{user_id}"


class EmbeddingCache:
    """Embedding vectors keyed by the content hash of the normalized text."""

    namespace = CacheNamespace.EMBEDDINGS

    def __init__(self, cache: TieredCacheService, ttl: Optional[int] = None):
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def normalize(text: str) -> str:
        return text.strip()

    def make_key(self, text: str, model: str, dimensions: int) -> str:
        """Logical key: content hash plus a digest of the model parameters.

        Vectors from different models or dimensions never share an entry.
        """
        content_hash = self.cache.key_generator.hash_content(self.normalize(text))
        digest = self.cache.key_generator.context_digest(
            {"model": model, "dimensions": dimensions}
        )
        return f"{content_hash}:{digest}"

    async def get(self, text: str, model: str, dimensions: int) -> Optional[List[float]]:
        return await self.cache.get(
            self.make_key(text, model, dimensions),
            namespace=self.namespace,
            ttl=self.ttl,
        )

    async def set(
        self,
        text: str,
        model: str,
        dimensions: int,
        embedding: List[float],
        ttl: Optional[int] = None
    ) -> None:
        await self.cache.set(
            self.make_key(text, model, dimensions),
            embedding,
            namespace=self.namespace,
            ttl=ttl or self.ttl,
            tags=[EMBEDDINGS_TAG],
        )

    async def invalidate_all(self) -> int:
        return await self.cache.invalidate_by_tag(EMBEDDINGS_TAG)


class SearchCache:
    """Search results keyed by query, user and search parameters."""

    namespace = CacheNamespace.SEARCH

    def __init__(self, cache: TieredCacheService):
        self.cache = cache

    def make_key(
        self,
        query: str,
        user_id: str,
        params: Optional[Dict[str, Any]] = None
    ) -> str:
        payload = json.dumps(
            {"query": query, "user_id": user_id, "params": params or {}},
            sort_keys=True,
            default=str,
        )
        return self.cache.key_generator.hash_content(payload)

    async def get(
        self,
        query: str,
        user_id: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Any]:
        return await self.cache.get(
            self.make_key(query, user_id, params), namespace=self.namespace
        )

    async def set(
        self,
        query: str,
        user_id: str,
        results: Any,
        params: Optional[Dict[str, Any]] = None
    ) -> None:
        await self.cache.set(
            self.make_key(query, user_id, params),
            results,
            namespace=self.namespace,
            tags=[SEARCH_TAG, user_tag(user_id)],
        )

    async def invalidate_for_user(self, user_id: str) -> int:
        """Invalidate every entry tagged for the user.

        The user tag is shared across namespaces, so cached documents of the
        user are invalidated as well.
        """
        return await self.cache.invalidate_by_tag(user_tag(user_id))

    async def invalidate_all(self) -> int:
        return await self.cache.invalidate_by_tag(SEARCH_TAG)


class DocumentCache:
    """Document records keyed by document id."""

    namespace = CacheNamespace.DOCUMENTS

    def __init__(self, cache: TieredCacheService):
        self.cache = cache

    async def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get(document_id, namespace=self.namespace)

    async def set(self, document_id: str, document: Dict[str, Any]) -> None:
        tags = [DOCUMENTS_TAG]
        if document.get("user_id"):
            tags.append(user_tag(document["user_id"]))

        await self.cache.set(
            document_id,
            document,
            namespace=self.namespace,
            tags=tags,
        )

    async def invalidate(self, document_id: str) -> None:
        await self.cache.delete(document_id, namespace=self.namespace)

    async def invalidate_for_user(self, user_id: str) -> int:
        return await self.cache.invalidate_by_tag(user_tag(user_id))
