"""Request options and results of the embedding pipeline."""

from dataclasses import dataclass, field
from typing import List, Optional

from ragcache.core.config import Settings, settings as default_settings


@dataclass
class EmbeddingOptions:
    """Per-call options for embedding generation."""

    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    use_cache: bool = True
    cache_ttl: int = 3600  # 1 hour

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EmbeddingOptions":
        settings = settings or default_settings
        return cls(
            model=settings.openai_embedding_model,
            dimensions=settings.openai_embedding_dimensions,
            cache_ttl=settings.embedding_cache_ttl,
        )


@dataclass
class PipelineConfig:
    """Limits and pacing of provider calls."""

    max_tokens: int = 8191  # Model limit
    batch_size: int = 100  # Provider batch limit
    rate_limit_delay: float = 0.1  # seconds between provider batches
    max_attempts: int = 3
    retry_delay: float = 1.0  # seconds, multiplied by the attempt number
    coalesce_requests: bool = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipelineConfig":
        settings = settings or default_settings
        return cls(
            max_tokens=settings.embedding_max_tokens,
            batch_size=settings.embedding_batch_size,
            rate_limit_delay=settings.embedding_rate_limit_delay,
            max_attempts=settings.embedding_max_attempts,
            retry_delay=settings.embedding_retry_delay,
            coalesce_requests=settings.embedding_coalesce_requests,
        )


@dataclass
class EmbeddingResult:
    """A single embedding and how it was obtained."""

    embedding: List[float]
    token_count: int
    cached: bool


@dataclass
class BatchEmbeddingResult:
    """Embeddings for a batch, in input order.

    ``total_tokens`` adds estimated tokens for cache hits to the provider's
    reported usage; ``provider_tokens`` is the provider usage alone.
    """

    embeddings: List[List[float]] = field(default_factory=list)
    token_counts: List[int] = field(default_factory=list)
    total_tokens: int = 0
    provider_tokens: int = 0
    cached: int = 0
    generated: int = 0
