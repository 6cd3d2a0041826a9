"""Base interface for remote (L2) cache backends."""

from abc import ABC, abstractmethod
from typing import Optional, Any, List


class IRemoteStore(ABC):
    """Abstract base class for the shared remote key/value tier.

    Backends serialize values themselves and raise on transport failure;
    the tiered cache service turns those failures into CacheStoreError.
    """

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Check if the backend is enabled and connected."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the remote store."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the remote store."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value.

        Args:
            key: The cache key.

        Returns:
            The stored value, or None if not found.
        """
        ...

    @abstractmethod
    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds."""
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys.

        Returns:
            Number of keys that existed and were removed.
        """
        ...

    @abstractmethod
    async def add_to_set(self, set_key: str, member: str) -> None:
        """Add a member to a set collection (idempotent)."""
        ...

    @abstractmethod
    async def expire(self, key: str, ttl: int, extend_only: bool = False) -> None:
        """Set the expiry of an existing key to ``ttl`` seconds.

        With ``extend_only`` the expiry is only moved later, never earlier;
        keys without an expiry always receive one.
        """
        ...

    @abstractmethod
    async def members_of(self, set_key: str) -> List[str]:
        """Return the members of a set collection (empty if absent)."""
        ...

    @abstractmethod
    async def keys_matching(self, pattern: str) -> List[str]:
        """Return keys matching a glob style pattern."""
        ...
