"""Embedding generation pipeline."""

from ragcache.services.embeddings.models import (
    BatchEmbeddingResult,
    EmbeddingOptions,
    EmbeddingResult,
    PipelineConfig,
)
from ragcache.services.embeddings.providers import (
    EmbeddingProvider,
    EmbeddingResponse,
    LangChainEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from ragcache.services.embeddings.service import EmbeddingService, estimate_token_count
from ragcache.services.embeddings.similarity import calculate_cosine_similarity

__all__ = [
    "BatchEmbeddingResult",
    "EmbeddingOptions",
    "EmbeddingResult",
    "PipelineConfig",
    "EmbeddingProvider",
    "EmbeddingResponse",
    "LangChainEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "EmbeddingService",
    "estimate_token_count",
    "calculate_cosine_similarity",
]
