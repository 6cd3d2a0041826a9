"""Tiered cache service.

Two tiers share one key space:
- L1: a bounded in-process map (fast, volatile, per process)
- L2: a shared remote key/value store (Redis in production)

Reads check L1 first and backfill it from L2. Writes go to both tiers.
Tagged writes are registered in the TagIndex so that whole groups of
entries can be invalidated at once. A background task sweeps expired L1
entries and trims the map back to its size cap.

The service is built for a single event loop: the L1 map and the counters
are mutated without locks.
"""

import asyncio
import fnmatch
from typing import Optional, Any, Dict, List, Iterable

from ragcache.core.errors import CacheStoreError
from ragcache.core.logging import get_logger
from ragcache.services.unified_cache.backends.base import IRemoteStore
from ragcache.services.unified_cache.key_generator import CacheKeyGenerator
from ragcache.services.unified_cache.models import (
    CacheConfig,
    CacheEntry,
    CacheNamespace,
    CacheStats,
    now_ms,
)
from ragcache.services.unified_cache.tag_index import TagIndex

logger = get_logger(__name__)


class TieredCacheService:
    """In-process L1 map in front of a remote L2 store.

    Usage:
        backend = RedisBackend()
        await backend.connect()

        cache = TieredCacheService(backend)
        cache.start()

        await cache.set("doc:42", {"title": "..."}, namespace=CacheNamespace.DOCUMENTS,
                        tags=["documents", "user:7"])
        doc = await cache.get("doc:42", namespace=CacheNamespace.DOCUMENTS)
        await cache.invalidate_by_tag("user:7")

        await cache.stop()
    """

    def __init__(
        self,
        backend: IRemoteStore,
        config: Optional[CacheConfig] = None
    ):
        """Initialize the tiered cache.

        Args:
            backend: The remote (L2) store.
            config: Optional TTL and memory bound configuration.
        """
        self.backend = backend
        self.config = config or CacheConfig()
        self.key_generator = CacheKeyGenerator(self.config.key_prefix)
        self.tag_index = TagIndex(backend, self.key_generator)

        self._memory: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._cleanup_task: Optional[asyncio.Task] = None

    @property
    def stats(self) -> CacheStats:
        """Live statistics counters."""
        return self._stats

    @property
    def memory_size(self) -> int:
        """Number of entries currently held in L1."""
        return len(self._memory)

    @property
    def is_running(self) -> bool:
        """Whether the background sweeper is active."""
        return self._cleanup_task is not None and not self._cleanup_task.done()

    # =========================================================================
    # Core operations
    # =========================================================================

    async def get(
        self,
        key: str,
        *,
        namespace: Optional[CacheNamespace] = None,
        ttl: Optional[int] = None,
        use_memory: bool = True,
        use_remote: bool = True
    ) -> Optional[Any]:
        """Get a cached value.

        Args:
            key: Logical cache key.
            namespace: Optional namespace of the key.
            ttl: TTL used when backfilling L1 from L2.
            use_memory: Consult (and backfill) the in-process tier.
            use_remote: Consult the remote tier.

        Returns:
            The cached value, or None on a miss.

        Raises:
            CacheStoreError: If the remote tier cannot be reached.
        """
        cache_key = self.key_generator.key(key, namespace)

        if use_memory:
            entry = self._memory.get(cache_key)
            if entry is not None:
                if not entry.is_expired():
                    self._stats.record_hit()
                    logger.debug(f"L1 cache hit: {cache_key}")
                    return entry.value
                del self._memory[cache_key]

        if use_remote:
            try:
                value = await self.backend.get(cache_key)
            except Exception as e:
                self._stats.record_error()
                logger.error(f"Cache get error for key {cache_key}: {e}")
                raise CacheStoreError(str(e) or "Cache get failed", "get", cache_key) from e

            if value is not None:
                self._stats.record_hit()
                logger.debug(f"L2 cache hit: {cache_key}")
                if use_memory:
                    self._memory[cache_key] = CacheEntry(
                        value=value,
                        timestamp=now_ms(),
                        ttl=self.config.resolve_ttl(ttl, namespace),
                    )
                return value

        self._stats.record_miss()
        return None

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: Optional[int] = None,
        namespace: Optional[CacheNamespace] = None,
        tags: Optional[Iterable[str]] = None,
        use_memory: bool = True,
        use_remote: bool = True
    ) -> None:
        """Store a value in both tiers.

        Args:
            key: Logical cache key.
            value: JSON serializable value.
            ttl: Explicit TTL in seconds (else namespace, else global default).
            namespace: Optional namespace of the key.
            tags: Tags to register the key under for bulk invalidation.
            use_memory: Write the in-process tier.
            use_remote: Write the remote tier (and the tag index).

        Raises:
            CacheStoreError: If the remote tier write fails.
        """
        cache_key = self.key_generator.key(key, namespace)
        cache_ttl = self.config.resolve_ttl(ttl, namespace)
        tag_list = list(tags or [])

        if use_memory:
            self._memory[cache_key] = CacheEntry(
                value=value,
                timestamp=now_ms(),
                ttl=cache_ttl,
                tags=tag_list or None,
            )

        if use_remote:
            try:
                await self.backend.set_with_ttl(cache_key, value, cache_ttl)
                if tag_list:
                    await self.tag_index.register(cache_key, tag_list, cache_ttl)
            except Exception as e:
                self._stats.record_error()
                logger.error(f"Cache set error for key {cache_key}: {e}")
                raise CacheStoreError(str(e) or "Cache set failed", "set", cache_key) from e

        self._stats.record_set()

    async def delete(
        self,
        key: str,
        *,
        namespace: Optional[CacheNamespace] = None
    ) -> None:
        """Remove a key from both tiers. Missing keys are not an error."""
        cache_key = self.key_generator.key(key, namespace)

        self._memory.pop(cache_key, None)

        try:
            await self.backend.delete(cache_key)
        except Exception as e:
            self._stats.record_error()
            logger.error(f"Cache delete error for key {cache_key}: {e}")
            raise CacheStoreError(str(e) or "Cache delete failed", "delete", cache_key) from e

        self._stats.record_delete()

    # =========================================================================
    # Bulk invalidation
    # =========================================================================

    async def invalidate_by_tag(self, tag: str) -> int:
        """Delete every entry registered under ``tag``.

        L1 entries written with ``use_remote=False`` are matched by the tags
        they carry, since they never reach the TagSet.

        Returns:
            Number of distinct keys invalidated (0 for an empty or absent tag).
        """
        try:
            remote_keys = await self.tag_index.members(tag)
            if remote_keys:
                await self.backend.delete(*remote_keys)
                await self.tag_index.drop(tag)
        except Exception as e:
            self._stats.record_error()
            logger.error(f"Cache tag invalidation error for tag {tag}: {e}")
            raise CacheStoreError(
                str(e) or "Cache tag invalidation failed", "invalidate_by_tag", tag
            ) from e

        memory_keys = [
            key for key, entry in self._memory.items() if entry.tags and tag in entry.tags
        ]
        invalidated = set(remote_keys) | set(memory_keys)
        for key in invalidated:
            self._memory.pop(key, None)

        removed = len(invalidated)
        if removed:
            logger.info(f"Invalidated {removed} cache entries with tag: {tag}")
        return removed

    async def invalidate_by_pattern(self, pattern: str) -> int:
        """Delete every entry whose key matches a glob pattern.

        The pattern is resolved under the key prefix, e.g. ``"search:*"``
        matches ``rag_cache:search:<anything>``. TagSets under
        ``<prefix>:tag:`` are index data, not entries, and are never matched.

        Returns:
            Number of distinct keys removed from either tier.
        """
        search_pattern = self.key_generator.pattern(pattern)
        tag_space = self.key_generator.tag("")

        try:
            remote_keys = [
                key for key in await self.backend.keys_matching(search_pattern)
                if not key.startswith(tag_space)
            ]
            if remote_keys:
                await self.backend.delete(*remote_keys)
        except Exception as e:
            self._stats.record_error()
            logger.error(f"Cache pattern invalidation error for {pattern}: {e}")
            raise CacheStoreError(
                str(e) or "Cache pattern invalidation failed", "invalidate_by_pattern", pattern
            ) from e

        memory_keys = [
            key for key in self._memory if fnmatch.fnmatchcase(key, search_pattern)
        ]
        for key in memory_keys:
            del self._memory[key]

        removed = len(set(remote_keys) | set(memory_keys))
        if removed:
            logger.info(f"Invalidated {removed} cache entries matching pattern: {pattern}")
        return removed

    async def clear_all(self) -> int:
        """Empty L1 and remove every remote key carrying the prefix.

        Returns:
            Number of remote keys removed.
        """
        self._memory.clear()

        try:
            keys = await self.backend.keys_matching(self.key_generator.all_keys_pattern())
            if keys:
                await self.backend.delete(*keys)
        except Exception as e:
            self._stats.record_error()
            logger.error(f"Error clearing cache: {e}")
            raise CacheStoreError(str(e) or "Cache clear failed", "clear_all") from e

        logger.info(f"Cleared all cache entries ({len(keys)} remote keys)")
        return len(keys)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Counters plus the current L1 size."""
        stats = self._stats.to_dict()
        stats["memory_size"] = len(self._memory)
        stats["max_memory_entries"] = self.config.max_memory_entries
        stats["remote"] = {"status": "connected" if self.backend.enabled else "disconnected"}
        return stats

    def reset_stats(self) -> None:
        """Reset all statistics."""
        self._stats.reset()

    # =========================================================================
    # L1 maintenance
    # =========================================================================

    def cleanup_memory(self) -> int:
        """Sweep expired entries, then trim the oldest entries over the cap.

        Oldest is by insertion timestamp; reads do not refresh it.

        Returns:
            Number of entries removed.
        """
        now = now_ms()
        expired = [key for key, entry in self._memory.items() if entry.is_expired(now)]
        for key in expired:
            del self._memory[key]

        cleaned = len(expired)

        overflow = len(self._memory) - self.config.max_memory_entries
        if overflow > 0:
            oldest = sorted(self._memory.items(), key=lambda item: item[1].timestamp)
            for key, _ in oldest[:overflow]:
                del self._memory[key]
            cleaned += overflow

        if cleaned:
            self._stats.evictions += cleaned
            logger.info(f"Cleaned up {cleaned} in-memory cache entries")
        return cleaned

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval)
            try:
                self.cleanup_memory()
            except Exception as e:
                logger.error(f"In-memory cache cleanup failed: {e}", exc_info=True)

    def start(self) -> None:
        """Start the periodic L1 sweeper on the running event loop."""
        if self.is_running:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(
            f"Cache sweeper started (interval {self.config.cleanup_interval}s, "
            f"max {self.config.max_memory_entries} entries)"
        )

    async def stop(self) -> None:
        """Cancel the sweeper and wait for it to finish."""
        if self._cleanup_task is None:
            return

        task = self._cleanup_task
        self._cleanup_task = None
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Cache sweeper stopped")

    # Testing utilities

    def get_memory_keys(self) -> List[str]:
        """Keys currently held in L1 (testing utility)."""
        return list(self._memory)

    def get_memory_entry(self, cache_key: str) -> Optional[CacheEntry]:
        """Raw L1 entry for a full cache key (testing utility)."""
        return self._memory.get(cache_key)
