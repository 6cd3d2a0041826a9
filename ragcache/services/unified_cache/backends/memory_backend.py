"""In-memory remote tier for testing and local development."""

import fnmatch
import json
import time
from typing import Optional, Any, List, Dict, Set, Union
from dataclasses import dataclass

from ragcache.services.unified_cache.backends.base import IRemoteStore


@dataclass
class StoredValue:
    """A stored value with optional expiration."""

    value: Union[str, Set[str]]
    expires_at: Optional[float] = None

    def is_expired(self) -> bool:
        """Check if the value has expired."""
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class MemoryBackend(IRemoteStore):
    """In-memory stand-in for the Redis remote tier.

    Mimics the Redis behaviour the cache relies on:
    - JSON serialization (values are copies, not shared references)
    - TTL support with lazy expiration
    - Set collections for tag membership
    - Glob pattern key matching

    It is not shared between processes.
    """

    def __init__(self):
        self._storage: Dict[str, StoredValue] = {}
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def connect(self) -> None:
        """Enable the backend."""
        self._enabled = True

    async def disconnect(self) -> None:
        """Disable the backend and clear storage."""
        self._enabled = False
        self._storage.clear()

    def _check_connected(self) -> None:
        if not self._enabled:
            raise ConnectionError("Memory backend is not connected")

    def _live(self, key: str) -> Optional[StoredValue]:
        stored = self._storage.get(key)
        if stored is None:
            return None
        if stored.is_expired():
            del self._storage[key]
            return None
        return stored

    async def get(self, key: str) -> Optional[Any]:
        self._check_connected()
        stored = self._live(key)
        if stored is None or isinstance(stored.value, set):
            return None
        return json.loads(stored.value)

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        self._check_connected()
        self._storage[key] = StoredValue(
            value=json.dumps(value),
            expires_at=time.time() + ttl
        )

    async def delete(self, *keys: str) -> int:
        self._check_connected()
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._storage[key]
                removed += 1
        return removed

    async def add_to_set(self, set_key: str, member: str) -> None:
        self._check_connected()
        stored = self._live(set_key)
        if stored is None or not isinstance(stored.value, set):
            stored = StoredValue(value=set())
            self._storage[set_key] = stored
        stored.value.add(member)

    async def expire(self, key: str, ttl: int, extend_only: bool = False) -> None:
        self._check_connected()
        stored = self._live(key)
        if stored is None:
            return
        expires_at = time.time() + ttl
        if extend_only and stored.expires_at is not None and stored.expires_at >= expires_at:
            return
        stored.expires_at = expires_at

    async def members_of(self, set_key: str) -> List[str]:
        self._check_connected()
        stored = self._live(set_key)
        if stored is None or not isinstance(stored.value, set):
            return []
        return sorted(stored.value)

    async def keys_matching(self, pattern: str) -> List[str]:
        self._check_connected()
        return [
            key for key in list(self._storage)
            if fnmatch.fnmatchcase(key, pattern) and self._live(key) is not None
        ]

    # Testing utilities

    def get_all_keys(self) -> List[str]:
        """Get all live keys (testing utility)."""
        return [key for key in list(self._storage) if self._live(key) is not None]

    def get_ttl(self, key: str) -> Optional[float]:
        """Remaining seconds before a key expires (testing utility)."""
        stored = self._live(key)
        if stored is None or stored.expires_at is None:
            return None
        return stored.expires_at - time.time()
