"""Tests for the cached embedding generation service."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from ragcache.core.errors import EmbeddingError, EmbeddingErrorCode
from ragcache.services.embeddings import (
    EmbeddingOptions,
    EmbeddingService,
    PipelineConfig,
    estimate_token_count,
)


class RateLimitError(Exception):
    """Stand-in named like the OpenAI SDK exception."""


class TestValidation:
    """Tests for input validation before any provider call."""

    @pytest.mark.asyncio
    async def test_empty_text(self, embedding_service, fake_provider):
        with pytest.raises(EmbeddingError, match="Text cannot be empty"):
            await embedding_service.generate_embedding("   ")
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_text_too_long(self, embedding_service, fake_provider):
        with pytest.raises(EmbeddingError, match=r"Text too long: 8192 tokens \(max: 8191\)"):
            await embedding_service.generate_embedding("x" * (8191 * 4 + 1))
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_text_at_limit_is_accepted(self, embedding_service):
        result = await embedding_service.generate_embedding("x" * (8191 * 4))
        assert result.cached is False

    def test_estimate_token_count(self):
        assert estimate_token_count("") == 0
        assert estimate_token_count("abcd") == 1
        assert estimate_token_count("abcde") == 2

    def test_validate_embedding_dimensions(self, embedding_service):
        assert embedding_service.validate_embedding_dimensions([0.0] * 8)
        assert not embedding_service.validate_embedding_dimensions([0.0] * 7)
        assert embedding_service.validate_embedding_dimensions([0.0] * 3, 3)

    def test_rejects_zero_attempts(self, fake_provider):
        with pytest.raises(ValueError):
            EmbeddingService(fake_provider, config=PipelineConfig(max_attempts=0))


class TestGenerateEmbedding:
    """Tests for single text embedding."""

    @pytest.mark.asyncio
    async def test_dimensions(self, embedding_service, embedding_options):
        result = await embedding_service.generate_embedding("hello world")
        assert len(result.embedding) == embedding_options.dimensions

    @pytest.mark.asyncio
    async def test_second_call_is_cached(self, embedding_service, fake_provider):
        first = await embedding_service.generate_embedding("hello world")
        second = await embedding_service.generate_embedding("hello world")

        assert first.cached is False
        assert second.cached is True
        assert second.embedding == first.embedding
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_token_counts(self, embedding_service):
        first = await embedding_service.generate_embedding("hello world")
        second = await embedding_service.generate_embedding("hello world")

        # provider usage, then the estimate for the cached copy
        assert first.token_count == 3
        assert second.token_count == estimate_token_count("hello world")

    @pytest.mark.asyncio
    async def test_whitespace_variants_share_cache(self, embedding_service, fake_provider):
        await embedding_service.generate_embedding("hello")
        result = await embedding_service.generate_embedding("  hello  ")

        assert result.cached is True
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_use_cache_false(self, embedding_service, fake_provider, tiered_cache):
        options = EmbeddingOptions(dimensions=8, use_cache=False)
        await embedding_service.generate_embedding("hello", options)
        await embedding_service.generate_embedding("hello", options)

        assert len(fake_provider.calls) == 2
        assert tiered_cache.memory_size == 0

    @pytest.mark.asyncio
    async def test_cache_ttl_option(self, embedding_service, tiered_cache):
        await embedding_service.generate_embedding("hello", EmbeddingOptions(dimensions=8, cache_ttl=42))

        (key,) = tiered_cache.get_memory_keys()
        assert tiered_cache.get_memory_entry(key).ttl == 42

    @pytest.mark.asyncio
    async def test_without_cache(self, fake_provider, pipeline_config, embedding_options):
        service = EmbeddingService(fake_provider, None, pipeline_config, embedding_options)

        await service.generate_embedding("hello")
        result = await service.generate_embedding("hello")

        assert result.cached is False
        assert await service.clear_embedding_cache() == 0


class TestRetry:
    """Tests for provider retry and error translation."""

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, embedding_service, fake_provider):
        fake_provider.failures = [RuntimeError("flaky"), RuntimeError("flaky")]

        result = await embedding_service.generate_embedding("hello")

        assert result.cached is False
        assert len(fake_provider.calls) == 3

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self, embedding_service, fake_provider):
        fake_provider.failures = [RateLimitError("slow down")] * 5

        with pytest.raises(EmbeddingError) as exc_info:
            await embedding_service.generate_embedding("hello")

        assert exc_info.value.code == EmbeddingErrorCode.RATE_LIMIT
        assert len(fake_provider.calls) == 3

    @pytest.mark.asyncio
    async def test_generic_error_message(self, embedding_service, fake_provider):
        fake_provider.failures = [RuntimeError("connection reset")] * 3

        with pytest.raises(EmbeddingError, match="connection reset") as exc_info:
            await embedding_service.generate_embedding("hello")

        assert exc_info.value.code == EmbeddingErrorCode.GENERIC

    @pytest.mark.asyncio
    async def test_linear_backoff(self, fake_provider, tiered_cache, embedding_options, monkeypatch):
        sleeps = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        fake_provider.failures = [RuntimeError("flaky")] * 2
        service = EmbeddingService(
            fake_provider,
            tiered_cache,
            PipelineConfig(retry_delay=1.0),
            embedding_options,
        )

        await service.generate_embedding("hello")

        assert sleeps == [1.0, 2.0]


class TestCacheOutage:
    """Tests for best-effort caching when the store is down."""

    @pytest.mark.asyncio
    async def test_store_outage_is_invisible(
        self, embedding_service, fake_provider, connected_memory_backend
    ):
        connected_memory_backend.get = AsyncMock(side_effect=ConnectionError("down"))
        connected_memory_backend.set_with_ttl = AsyncMock(side_effect=ConnectionError("down"))

        result = await embedding_service.generate_embedding("hello")

        assert result.cached is False
        assert len(result.embedding) == 8
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_batch_with_store_outage(
        self, embedding_service, fake_provider, connected_memory_backend
    ):
        connected_memory_backend.get = AsyncMock(side_effect=ConnectionError("down"))

        result = await embedding_service.generate_embeddings(["a", "b"])

        assert result.generated == 2
        assert fake_provider.calls == [["a", "b"]]

    @pytest.mark.asyncio
    async def test_clear_cache_failure(self, embedding_service, connected_memory_backend):
        connected_memory_backend.members_of = AsyncMock(side_effect=ConnectionError("down"))

        with pytest.raises(EmbeddingError, match="Failed to clear cache"):
            await embedding_service.clear_embedding_cache()


class TestGenerateEmbeddings:
    """Tests for batch embedding."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, embedding_service, fake_provider):
        with pytest.raises(EmbeddingError, match="No texts provided"):
            await embedding_service.generate_embeddings([])
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_invalid_text_fails_before_provider(self, embedding_service, fake_provider):
        with pytest.raises(EmbeddingError, match="Text cannot be empty"):
            await embedding_service.generate_embeddings(["fine", ""])
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_duplicates_sent_once_in_order(self, embedding_service, fake_provider):
        result = await embedding_service.generate_embeddings(["a", "b", "a"])

        assert fake_provider.calls == [["a", "b"]]
        assert result.embeddings[0] == fake_provider.vector_for("a")
        assert result.embeddings[1] == fake_provider.vector_for("b")
        assert result.embeddings[2] == fake_provider.vector_for("a")
        assert result.generated == 3
        assert result.cached == 0

    @pytest.mark.asyncio
    async def test_mixed_cache_hits(self, embedding_service, fake_provider):
        await embedding_service.generate_embedding("cached text")
        fake_provider.calls.clear()

        result = await embedding_service.generate_embeddings(["new one", "cached text", "new two"])

        assert fake_provider.calls == [["new one", "new two"]]
        assert result.cached == 1
        assert result.generated == 2
        assert result.embeddings[1] == fake_provider.vector_for("cached text")
        assert result.token_counts == [2, 3, 2]
        assert result.provider_tokens == 4
        assert result.total_tokens == 4 + 3

    @pytest.mark.asyncio
    async def test_all_cached_skips_provider(self, embedding_service, fake_provider):
        await embedding_service.generate_embeddings(["a", "b"])
        fake_provider.calls.clear()

        result = await embedding_service.generate_embeddings(["b", "a"])

        assert fake_provider.calls == []
        assert result.cached == 2
        assert result.provider_tokens == 0

    @pytest.mark.asyncio
    async def test_chunking(self, fake_provider, tiered_cache, embedding_options):
        service = EmbeddingService(
            fake_provider,
            tiered_cache,
            PipelineConfig(batch_size=2, retry_delay=0, rate_limit_delay=0),
            embedding_options,
        )

        texts = ["t1", "t2", "t3", "t4", "t5"]
        result = await service.generate_embeddings(texts)

        assert fake_provider.calls == [["t1", "t2"], ["t3", "t4"], ["t5"]]
        assert result.embeddings == [fake_provider.vector_for(t) for t in texts]
        assert result.cached + result.generated == len(texts)

    @pytest.mark.asyncio
    async def test_rate_limit_delay_between_provider_chunks(
        self, fake_provider, tiered_cache, embedding_options, monkeypatch
    ):
        sleeps = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        service = EmbeddingService(
            fake_provider,
            tiered_cache,
            PipelineConfig(batch_size=2, rate_limit_delay=0.1),
            embedding_options,
        )
        await service.generate_embedding("t1")
        await service.generate_embedding("t2")

        await service.generate_embeddings(["t1", "t2", "t3", "t4", "t5"])

        # first chunk is all cached, last chunk has nothing after it
        assert sleeps == [0.1]

    @pytest.mark.asyncio
    async def test_provider_count_mismatch(self, embedding_service, fake_provider):
        fake_provider.embed = AsyncMock(return_value=type(
            "Response", (), {"vectors": [[0.0] * 8], "usage_tokens": 1}
        )())

        with pytest.raises(EmbeddingError, match="batch size mismatch"):
            await embedding_service.generate_embeddings(["a", "b"])


class TestCoalescing:
    """Tests for sharing in-flight generations."""

    @staticmethod
    def slow_down(provider):
        embed = provider.embed

        async def slow_embed(texts, **kwargs):
            await asyncio.sleep(0.01)
            return await embed(texts, **kwargs)

        provider.embed = slow_embed

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_call(
        self, fake_provider, tiered_cache, embedding_options
    ):
        service = EmbeddingService(
            fake_provider,
            tiered_cache,
            PipelineConfig(retry_delay=0, coalesce_requests=True),
            embedding_options,
        )

        self.slow_down(fake_provider)
        results = await asyncio.gather(*(service.generate_embedding("same") for _ in range(5)))

        assert len(fake_provider.calls) == 1
        assert all(result.embedding == results[0].embedding for result in results)

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, embedding_service, fake_provider):
        self.slow_down(fake_provider)
        await asyncio.gather(*(embedding_service.generate_embedding("same") for _ in range(3)))

        assert len(fake_provider.calls) == 3

    @pytest.mark.asyncio
    async def test_cache_bypass_is_not_shared(
        self, fake_provider, tiered_cache, embedding_options
    ):
        service = EmbeddingService(
            fake_provider,
            tiered_cache,
            PipelineConfig(retry_delay=0, coalesce_requests=True),
            embedding_options,
        )
        await service.generate_embedding("same")
        calls_before = len(fake_provider.calls)

        cache_get = tiered_cache.get

        async def slow_get(*args, **kwargs):
            await asyncio.sleep(0.01)
            return await cache_get(*args, **kwargs)

        tiered_cache.get = slow_get
        cached, bypassed = await asyncio.gather(
            service.generate_embedding("same"),
            service.generate_embedding("same", EmbeddingOptions(dimensions=8, use_cache=False)),
        )

        assert cached.cached is True
        assert bypassed.cached is False
        assert len(fake_provider.calls) == calls_before + 1


class TestDimensionCheck:
    """Tests for rejecting provider vectors of the wrong size."""

    @staticmethod
    def truncate(provider):
        embed = provider.embed

        async def short_embed(texts, **kwargs):
            response = await embed(texts, **kwargs)
            response.vectors = [vector[:-1] for vector in response.vectors]
            return response

        provider.embed = short_embed

    @pytest.mark.asyncio
    async def test_single_mismatch_is_not_cached(
        self, embedding_service, fake_provider, tiered_cache
    ):
        self.truncate(fake_provider)

        with pytest.raises(EmbeddingError, match="expected 8, got 7"):
            await embedding_service.generate_embedding("hello")
        assert tiered_cache.memory_size == 0

    @pytest.mark.asyncio
    async def test_batch_mismatch_is_not_cached(
        self, embedding_service, fake_provider, tiered_cache
    ):
        self.truncate(fake_provider)

        with pytest.raises(EmbeddingError, match="dimension mismatch"):
            await embedding_service.generate_embeddings(["a", "b"])
        assert tiered_cache.memory_size == 0
