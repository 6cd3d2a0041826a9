"""Cache key generation for both cache tiers.

Key format: {prefix}[:{namespace}]:{key}[:{context_digest}]
Tag set format: {prefix}:tag:{tag}

Examples:
    rag_cache:embeddings:9f86d081884c7d65...:1a2b3c4d
    rag_cache:documents:doc-42
    rag_cache:tag:embeddings
"""

import hashlib
import json
from typing import Optional, Dict, Any

from ragcache.services.unified_cache.models import CacheNamespace


class CacheKeyGenerator:
    """Builds the stable cache key wire format for a given prefix."""

    CONTEXT_DIGEST_LENGTH = 8

    def __init__(self, prefix: str = "rag_cache"):
        self.prefix = prefix

    def key(
        self,
        key: str,
        namespace: Optional[CacheNamespace] = None,
        additional_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """Generate a full cache key.

        Args:
            key: The caller supplied logical key.
            namespace: Optional namespace segment.
            additional_context: Optional parameters that disambiguate entries
                sharing the same logical key (model, dimensions, ...).

        Returns:
            Cache key string.
        """
        parts = [self.prefix]

        if namespace is not None:
            parts.append(CacheNamespace(namespace).value)

        parts.append(key)

        if additional_context:
            parts.append(self.context_digest(additional_context))

        return ":".join(parts)

    def tag(self, tag: str) -> str:
        """Generate the key of a tag membership set."""
        return f"{self.prefix}:tag:{tag}"

    def pattern(self, pattern: str) -> str:
        """Resolve a glob pattern against the prefixed key space."""
        return f"{self.prefix}:{pattern}"

    def all_keys_pattern(self) -> str:
        """Pattern matching every key carrying this prefix."""
        return f"{self.prefix}:*"

    @classmethod
    def context_digest(cls, context: Dict[str, Any]) -> str:
        """Short digest of a context mapping (sorted keys for stable ordering)."""
        serialized = json.dumps(context, sort_keys=True, default=str)
        digest = hashlib.sha256(serialized.encode('utf-8')).hexdigest()
        return digest[:cls.CONTEXT_DIGEST_LENGTH]

    @staticmethod
    def hash_content(content: str) -> str:
        """SHA-256 hex digest of arbitrary content."""
        return hashlib.sha256(content.encode('utf-8')).hexdigest()
