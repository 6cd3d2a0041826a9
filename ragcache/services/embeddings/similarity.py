"""Vector similarity helpers."""

import math
from typing import Sequence

from ragcache.core.errors import EmbeddingError, EmbeddingErrorCode


def calculate_cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    A zero vector makes the denominator zero and the result ``nan``;
    callers ranking by similarity must handle it.

    Raises:
        EmbeddingError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise EmbeddingError(
            "Vectors must have the same dimensions",
            EmbeddingErrorCode.INVALID_REQUEST,
        )

    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0

    for x, y in zip(a, b):
        dot_product += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denominator == 0:
        return math.nan
    return dot_product / denominator
