"""Redis remote cache backend implementation."""

import json
from typing import Optional, Any, List
from datetime import timedelta

import redis.asyncio as redis

from ragcache.services.unified_cache.backends.base import IRemoteStore
from ragcache.core.config import settings
from ragcache.core.logging import get_logger

logger = get_logger(__name__)


class RedisBackend(IRemoteStore):
    """Redis-based remote tier.

    Provides:
    - Automatic JSON serialization/deserialization
    - Native TTLs (SETEX / EXPIRE)
    - Set collections for tag membership (SADD / SMEMBERS)
    - Non-blocking key scans (SCAN MATCH)

    Transport errors are raised to the caller, never swallowed.
    """

    def __init__(self, redis_url: Optional[str] = None, scan_count: int = 500):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL. If not provided, uses settings.redis_url.
            scan_count: COUNT hint used for SCAN iterations.
        """
        self._redis_url = redis_url or settings.redis_url
        self._client: Optional[redis.Redis] = None
        self._scan_count = scan_count

    @property
    def enabled(self) -> bool:
        """Check if Redis is connected."""
        return self._client is not None

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the Redis client (for advanced operations)."""
        return self._client

    async def connect(self) -> None:
        """Connect to Redis and verify the connection."""
        if not self._redis_url:
            raise ValueError("Redis URL not configured")

        self._client = redis.from_url(
            self._redis_url,
            encoding="utf-8",
            decode_responses=True
        )
        try:
            await self._client.ping()
        except redis.RedisError:
            await self._client.aclose()
            self._client = None
            raise
        logger.info("Connected to Redis cache")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis cache")

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise redis.ConnectionError("Redis backend is not connected")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        value = await self._require_client().get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        serialized = json.dumps(value)
        await self._require_client().setex(key, timedelta(seconds=ttl), serialized)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._require_client().delete(*keys)

    async def add_to_set(self, set_key: str, member: str) -> None:
        await self._require_client().sadd(set_key, member)

    async def expire(self, key: str, ttl: int, extend_only: bool = False) -> None:
        client = self._require_client()
        if extend_only:
            remaining = await client.ttl(key)
            # -1: no expiry set, -2: missing key
            if remaining >= ttl:
                return
        await client.expire(key, ttl)

    async def members_of(self, set_key: str) -> List[str]:
        members = await self._require_client().smembers(set_key)
        return sorted(members)

    async def keys_matching(self, pattern: str) -> List[str]:
        client = self._require_client()
        return [key async for key in client.scan_iter(match=pattern, count=self._scan_count)]
