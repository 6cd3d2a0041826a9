"""Shared test fixtures for the cache and embedding service tests."""

import hashlib
import math
import pytest
from typing import List, Optional, Union

from ragcache.services.embeddings import (
    EmbeddingOptions,
    EmbeddingProvider,
    EmbeddingResponse,
    EmbeddingService,
    PipelineConfig,
)
from ragcache.services.unified_cache import CacheConfig, TieredCacheService
from ragcache.services.unified_cache.backends.memory_backend import MemoryBackend

TEST_DIMENSIONS = 8


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic provider that records every request.

    ``failures`` are raised, in order, by the first calls.
    """

    def __init__(self, failures: Optional[List[Exception]] = None):
        self.calls: List[Union[str, List[str]]] = []
        self.failures = list(failures or [])
        self.closed = False

    async def embed(self, texts, *, model: str, dimensions: int) -> EmbeddingResponse:
        self.calls.append(texts)
        if self.failures:
            raise self.failures.pop(0)

        batch = [texts] if isinstance(texts, str) else list(texts)
        return EmbeddingResponse(
            vectors=[self.vector_for(text, dimensions) for text in batch],
            usage_tokens=sum(math.ceil(len(text) / 4) for text in batch),
        )

    async def close(self) -> None:
        self.closed = True

    @staticmethod
    def vector_for(text: str, dimensions: int = TEST_DIMENSIONS) -> List[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(digest[i % len(digest)] + 1) / 256.0 for i in range(dimensions)]


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def memory_backend():
    """Create a fresh memory backend for testing."""
    return MemoryBackend()


@pytest.fixture
async def connected_memory_backend(memory_backend):
    """Create a connected memory backend."""
    await memory_backend.connect()
    yield memory_backend
    await memory_backend.disconnect()


@pytest.fixture
def cache_config():
    """Create a test cache configuration."""
    return CacheConfig(max_memory_entries=5, cleanup_interval=0.05)


@pytest.fixture
async def tiered_cache(connected_memory_backend):
    """Create a tiered cache service with memory backend."""
    cache = TieredCacheService(connected_memory_backend)
    yield cache
    await cache.stop()


# ============================================================================
# Embedding Fixtures
# ============================================================================

@pytest.fixture
def fake_provider():
    """Create a deterministic embedding provider."""
    return FakeEmbeddingProvider()


@pytest.fixture
def pipeline_config():
    """Pipeline configuration without real sleeps."""
    return PipelineConfig(retry_delay=0, rate_limit_delay=0)


@pytest.fixture
def embedding_options():
    """Embedding options matching the fake provider dimensions."""
    return EmbeddingOptions(dimensions=TEST_DIMENSIONS)


@pytest.fixture
def embedding_service(fake_provider, tiered_cache, pipeline_config, embedding_options):
    """Create an embedding service over the tiered cache."""
    return EmbeddingService(
        fake_provider,
        tiered_cache,
        config=pipeline_config,
        default_options=embedding_options,
    )


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_embedding():
    """Sample embedding vector."""
    return [0.1, 0.2, 0.3, 0.4, 0.5] * 64  # 320-dim vector


@pytest.fixture
def sample_document():
    """Sample document record for testing."""
    return {
        "id": "doc-42",
        "user_id": "user-7",
        "title": "Travel Directive",
        "content": "Meal allowances are provided for official travel.",
    }
