"""Embedding generation service.

Cache-aside wrapper around an embedding provider:

    Validate -> CacheLookup -> hit: return
                            -> miss: generate with retry -> cache (best-effort) -> return

Cache reads and writes never fail a request: a cache outage only means
every request goes to the provider. Provider failures are retried with
linear backoff and then surfaced as a single EmbeddingError.
"""

import asyncio
import math
from typing import Dict, List, Optional, Sequence, Union

from ragcache.core.errors import (
    EmbeddingError,
    EmbeddingErrorCode,
    categorize_provider_error,
)
from ragcache.core.logging import get_logger
from ragcache.services.embeddings.models import (
    BatchEmbeddingResult,
    EmbeddingOptions,
    EmbeddingResult,
    PipelineConfig,
)
from ragcache.services.embeddings.providers import EmbeddingProvider, EmbeddingResponse
from ragcache.services.unified_cache.key_generator import CacheKeyGenerator
from ragcache.services.unified_cache.namespaced import EmbeddingCache
from ragcache.services.unified_cache.tiered_cache import TieredCacheService

logger = get_logger(__name__)


def estimate_token_count(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


class EmbeddingService:
    """Generates embeddings with caching, retry and batch partitioning.

    The service holds no cached data itself; all persistence goes through
    the tiered cache under the ``embeddings`` namespace and tag.

    Usage:
        service = EmbeddingService(OpenAIEmbeddingProvider(), cache)

        result = await service.generate_embedding("What is the meal allowance?")
        batch = await service.generate_embeddings(["first chunk", "second chunk"])
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: Optional[TieredCacheService] = None,
        config: Optional[PipelineConfig] = None,
        default_options: Optional[EmbeddingOptions] = None
    ):
        """Initialize the embedding service.

        Args:
            provider: External embedding provider.
            cache: Tiered cache to read and populate. None disables caching.
            config: Token ceiling, batch size, pacing and retry settings.
            default_options: Options used when a call passes none.
        """
        self.provider = provider
        self.config = config or PipelineConfig()
        self.default_options = default_options or EmbeddingOptions()
        self.embedding_cache = EmbeddingCache(cache) if cache is not None else None

        if self.config.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        # content hash -> in-flight generation, used only when coalescing
        self._pending: Dict[str, asyncio.Future] = {}

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_text(self, text: str) -> None:
        """Reject empty text and text over the model token ceiling."""
        if not text or not text.strip():
            raise EmbeddingError("Text cannot be empty", EmbeddingErrorCode.INVALID_REQUEST)

        token_count = estimate_token_count(text)
        if token_count > self.config.max_tokens:
            raise EmbeddingError(
                f"Text too long: {token_count} tokens (max: {self.config.max_tokens})",
                EmbeddingErrorCode.INVALID_REQUEST,
            )

    def validate_embedding_dimensions(
        self,
        embedding: Sequence[float],
        expected_dimensions: Optional[int] = None
    ) -> bool:
        expected = expected_dimensions or self.default_options.dimensions
        return len(embedding) == expected

    def _check_dimensions(self, vectors: List[List[float]], options: EmbeddingOptions) -> None:
        # Runs before any cache write, so a malformed vector is never stored
        for vector in vectors:
            if not self.validate_embedding_dimensions(vector, options.dimensions):
                raise EmbeddingError(
                    f"Embedding dimension mismatch: expected {options.dimensions}, "
                    f"got {len(vector)}"
                )

    # =========================================================================
    # Cache access (best-effort)
    # =========================================================================

    async def _get_cached(self, text: str, options: EmbeddingOptions) -> Optional[EmbeddingResult]:
        if self.embedding_cache is None:
            return None

        try:
            cached = await self.embedding_cache.get(text, options.model, options.dimensions)
        except Exception as e:
            logger.warning(f"Embedding cache retrieval error, treating as miss: {e}")
            return None

        if cached is None:
            return None

        return EmbeddingResult(
            embedding=cached,
            token_count=estimate_token_count(text),
            cached=True,
        )

    async def _set_cached(self, text: str, options: EmbeddingOptions, embedding: List[float]) -> None:
        if self.embedding_cache is None:
            return

        try:
            await self.embedding_cache.set(
                text, options.model, options.dimensions, embedding, ttl=options.cache_ttl
            )
        except Exception as e:
            logger.warning(f"Embedding cache storage error, continuing without cache: {e}")

    # =========================================================================
    # Provider access
    # =========================================================================

    async def _embed_with_retry(
        self,
        texts: Union[str, List[str]],
        options: EmbeddingOptions
    ) -> EmbeddingResponse:
        """Call the provider, retrying with linear backoff.

        Before retry ``i`` the service sleeps ``retry_delay * i`` seconds.
        After the last attempt the error is translated into an EmbeddingError.
        """
        max_attempts = self.config.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await self.provider.embed(
                    texts, model=options.model, dimensions=options.dimensions
                )
            except Exception as e:
                last_error = e
                if attempt < max_attempts:
                    delay = self.config.retry_delay * attempt
                    logger.warning(
                        f"Embedding request failed (attempt {attempt}/{max_attempts}): {e}; "
                        f"retrying in {delay}s"
                    )
                    await asyncio.sleep(delay)

        error = categorize_provider_error(last_error)
        logger.error(f"Embedding provider error after {max_attempts} attempts: {error.message}")
        raise error from last_error

    # =========================================================================
    # Public API
    # =========================================================================

    async def generate_embedding(
        self,
        text: str,
        options: Optional[EmbeddingOptions] = None
    ) -> EmbeddingResult:
        """Embed one text, serving it from cache when possible.

        Raises:
            EmbeddingError: For invalid text, or when the provider keeps failing.
        """
        self.validate_text(text)
        options = options or self.default_options

        # Cache-bypassing calls must reach the provider, so they never join
        if not self.config.coalesce_requests or not options.use_cache:
            return await self._resolve(text, options)

        key = CacheKeyGenerator.hash_content(EmbeddingCache.normalize(text))
        key = f"{key}:{options.model}:{options.dimensions}:{options.cache_ttl}"
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve(text, options))
            self._pending[key] = task
            task.add_done_callback(lambda _: self._pending.pop(key, None))
        return await asyncio.shield(task)

    async def _resolve(self, text: str, options: EmbeddingOptions) -> EmbeddingResult:
        if options.use_cache:
            cached = await self._get_cached(text, options)
            if cached is not None:
                logger.debug("Embedding cache hit")
                return cached

        logger.debug("Generating new embedding")
        response = await self._embed_with_retry(text, options)
        if not response.vectors:
            raise EmbeddingError("Provider returned no embedding")
        self._check_dimensions(response.vectors, options)

        result = EmbeddingResult(
            embedding=response.vectors[0],
            token_count=response.usage_tokens,
            cached=False,
        )

        if options.use_cache:
            await self._set_cached(text, options, result.embedding)

        return result

    async def generate_embeddings(
        self,
        texts: List[str],
        options: Optional[EmbeddingOptions] = None
    ) -> BatchEmbeddingResult:
        """Embed a list of texts, preserving input order.

        Texts are processed in chunks of ``batch_size``. Within a chunk, cache
        hits are resolved first and every remaining distinct text is sent in
        one provider call; results are scattered back to their positions.

        Raises:
            EmbeddingError: For an empty list or any invalid text (before any
                provider call), or when the provider keeps failing.
        """
        if not texts:
            raise EmbeddingError("No texts provided", EmbeddingErrorCode.INVALID_REQUEST)

        for text in texts:
            self.validate_text(text)

        options = options or self.default_options
        batch_size = self.config.batch_size
        result = BatchEmbeddingResult()

        for start in range(0, len(texts), batch_size):
            chunk = texts[start:start + batch_size]
            chunk_results: List[Optional[EmbeddingResult]] = [None] * len(chunk)

            # text -> chunk-relative indices still needing a vector
            uncached: Dict[str, List[int]] = {}

            for index, text in enumerate(chunk):
                hit = await self._get_cached(text, options) if options.use_cache else None
                if hit is not None:
                    chunk_results[index] = hit
                    result.cached += 1
                else:
                    uncached.setdefault(text, []).append(index)

            if uncached:
                pending_texts = list(uncached)
                response = await self._embed_with_retry(pending_texts, options)

                if len(response.vectors) != len(pending_texts):
                    raise EmbeddingError(
                        f"Embedding batch size mismatch: expected {len(pending_texts)}, "
                        f"got {len(response.vectors)}"
                    )
                self._check_dimensions(response.vectors, options)

                for text, vector in zip(pending_texts, response.vectors):
                    for index in uncached[text]:
                        chunk_results[index] = EmbeddingResult(
                            embedding=vector,
                            token_count=estimate_token_count(text),
                            cached=False,
                        )
                        result.generated += 1

                    if options.use_cache:
                        await self._set_cached(text, options, vector)

                result.provider_tokens += response.usage_tokens
                result.total_tokens += response.usage_tokens

                # Rate limiting delay between provider batches
                if start + batch_size < len(texts):
                    await asyncio.sleep(self.config.rate_limit_delay)

            for item in chunk_results:
                result.embeddings.append(item.embedding)
                result.token_counts.append(item.token_count)
                if item.cached:
                    result.total_tokens += item.token_count

        logger.info(f"Generated embeddings: {result.generated} new, {result.cached} cached")
        return result

    async def clear_embedding_cache(self) -> int:
        """Invalidate every cached embedding.

        Raises:
            EmbeddingError: If the cache could not be cleared.
        """
        if self.embedding_cache is None:
            return 0

        try:
            return await self.embedding_cache.invalidate_all()
        except Exception as e:
            logger.error(f"Error clearing embedding cache: {e}")
            raise EmbeddingError("Failed to clear cache") from e
