"""Embedding provider clients.

Providers embed one text or a list of texts in a single request and report
token usage. They raise the client library's own exceptions; the pipeline
classifies them with ``categorize_provider_error``.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Union

from langchain_core.embeddings import Embeddings
from openai import AsyncOpenAI

from ragcache.core.config import settings
from ragcache.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmbeddingResponse:
    """Vectors in input order plus the tokens billed for the request."""

    vectors: List[List[float]]
    usage_tokens: int


class EmbeddingProvider(ABC):
    """Interface of an external embedding service."""

    @abstractmethod
    async def embed(
        self,
        texts: Union[str, List[str]],
        *,
        model: str,
        dimensions: int
    ) -> EmbeddingResponse:
        """Embed one text or a batch of texts in a single request."""
        ...

    async def close(self) -> None:
        """Release client resources."""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings API client."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self._client = client or AsyncOpenAI(api_key=api_key or settings.openai_api_key)

    async def embed(
        self,
        texts: Union[str, List[str]],
        *,
        model: str,
        dimensions: int
    ) -> EmbeddingResponse:
        response = await self._client.embeddings.create(
            model=model,
            input=texts,
            dimensions=dimensions,
        )
        data = sorted(response.data, key=lambda item: item.index)
        return EmbeddingResponse(
            vectors=[item.embedding for item in data],
            usage_tokens=response.usage.total_tokens,
        )

    async def close(self) -> None:
        await self._client.close()


class LangChainEmbeddingProvider(EmbeddingProvider):
    """Adapter for any LangChain ``Embeddings`` implementation.

    LangChain embeddings are configured with their model up front and do not
    report usage, so ``model``/``dimensions`` are ignored here and usage is
    estimated at four characters per token.
    """

    def __init__(self, embeddings: Embeddings):
        self.embeddings = embeddings

    async def embed(
        self,
        texts: Union[str, List[str]],
        *,
        model: str,
        dimensions: int
    ) -> EmbeddingResponse:
        batch = [texts] if isinstance(texts, str) else list(texts)
        vectors = await self.embeddings.aembed_documents(batch)
        usage = sum(math.ceil(len(text) / 4) for text in batch)
        return EmbeddingResponse(vectors=vectors, usage_tokens=usage)
