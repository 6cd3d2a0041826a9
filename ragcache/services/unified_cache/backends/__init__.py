"""Remote tier backends for the tiered cache.

Provides different storage backends for the L2 tier:
- RedisBackend: Production Redis-based tier
- MemoryBackend: In-memory tier for testing and local development
"""

from ragcache.services.unified_cache.backends.base import IRemoteStore
from ragcache.services.unified_cache.backends.redis_backend import RedisBackend
from ragcache.services.unified_cache.backends.memory_backend import MemoryBackend

__all__ = [
    "IRemoteStore",
    "RedisBackend",
    "MemoryBackend",
]
