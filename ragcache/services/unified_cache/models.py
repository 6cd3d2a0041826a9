"""Cache entry, namespace and statistics types."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CacheNamespace(str, Enum):
    """Logical partitions of the cache key space."""

    EMBEDDINGS = "embeddings"
    SEARCH = "search"
    DOCUMENTS = "documents"
    CONVERSATIONS = "conversations"
    AUTH = "auth"
    API = "api"


# Default TTLs by namespace (seconds)
NAMESPACE_TTLS: Dict[CacheNamespace, int] = {
    CacheNamespace.EMBEDDINGS: 3600,  # 1 hour
    CacheNamespace.SEARCH: 300,  # 5 minutes
    CacheNamespace.DOCUMENTS: 1800,  # 30 minutes
    CacheNamespace.CONVERSATIONS: 86400,  # 24 hours
    CacheNamespace.AUTH: 900,  # 15 minutes
    CacheNamespace.API: 60,  # 1 minute
}

DEFAULT_TTL = 300  # 5 minutes


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """An in-process cache entry.

    The entry is expired once ``now > timestamp + ttl * 1000``.
    """

    value: Any
    timestamp: int
    ttl: int
    tags: Optional[List[str]] = None

    def is_expired(self, now: Optional[int] = None) -> bool:
        """Check if the entry has expired."""
        current = now_ms() if now is None else now
        return current > self.timestamp + self.ttl * 1000


@dataclass
class CacheStats:
    """Process-wide counters for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache reads."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self) -> None:
        self.deletes += 1

    def record_error(self) -> None:
        self.errors += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.errors = 0
        self.evictions = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "errors": self.errors,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 3),
        }


@dataclass
class CacheConfig:
    """Configuration for TTLs and in-process tier bounds."""

    key_prefix: str = "rag_cache"
    default_ttl: int = DEFAULT_TTL
    max_memory_entries: int = 1000
    cleanup_interval: float = 60.0  # seconds
    namespace_ttls: Dict[CacheNamespace, int] = field(
        default_factory=lambda: dict(NAMESPACE_TTLS)
    )

    def resolve_ttl(
        self,
        ttl: Optional[int] = None,
        namespace: Optional[CacheNamespace] = None
    ) -> int:
        """Resolve a TTL: explicit value, then namespace default, then global default."""
        if ttl:
            return ttl
        if namespace is not None:
            return self.namespace_ttls.get(CacheNamespace(namespace), self.default_ttl)
        return self.default_ttl
