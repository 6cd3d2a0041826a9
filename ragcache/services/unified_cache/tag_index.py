"""Tag membership index stored in the remote tier.

A tag is never created explicitly: it exists while its set collection
holds at least one member. Every tagged write unions the cache key into
the tag's set and refreshes the set's TTL to the entry TTL, so sets whose
members have all expired disappear on their own.
"""

from typing import Iterable, List

from ragcache.services.unified_cache.backends.base import IRemoteStore
from ragcache.services.unified_cache.key_generator import CacheKeyGenerator


class TagIndex:
    """Maps tag names to the cache keys written with them."""

    def __init__(self, backend: IRemoteStore, key_generator: CacheKeyGenerator):
        self.backend = backend
        self.key_generator = key_generator

    async def register(self, cache_key: str, tags: Iterable[str], ttl: int) -> None:
        """Add ``cache_key`` to every tag set and refresh the set TTLs."""
        for tag in tags:
            tag_key = self.key_generator.tag(tag)
            await self.backend.add_to_set(tag_key, cache_key)
            await self.backend.expire(tag_key, ttl, extend_only=True)

    async def members(self, tag: str) -> List[str]:
        """Cache keys currently registered under ``tag``."""
        return await self.backend.members_of(self.key_generator.tag(tag))

    async def drop(self, tag: str) -> None:
        """Remove the tag set itself."""
        await self.backend.delete(self.key_generator.tag(tag))
