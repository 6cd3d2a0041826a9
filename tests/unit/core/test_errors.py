"""Tests for error types and provider error classification."""

import pytest

from ragcache.core.errors import (
    CacheStoreError,
    EmbeddingError,
    EmbeddingErrorCode,
    ErrorCategory,
    categorize_provider_error,
)


class RateLimitError(Exception):
    """Stand-in named like the OpenAI SDK exception."""


class AuthenticationError(Exception):
    """Stand-in named like the OpenAI SDK exception."""


class StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


class TestErrorTypes:
    """Tests for structured error payloads."""

    def test_cache_store_error(self):
        error = CacheStoreError("down", "get", "rag_cache:k")

        assert error.operation == "get"
        assert error.key == "rag_cache:k"
        assert error.category == ErrorCategory.STORAGE
        payload = error.to_dict()
        assert payload["details"] == {"operation": "get", "key": "rag_cache:k"}
        assert payload["recoverable"] is True

    def test_embedding_error_defaults(self):
        error = EmbeddingError("failed")

        assert error.code == EmbeddingErrorCode.GENERIC
        assert error.status_code is None
        assert error.category == ErrorCategory.UNKNOWN

    def test_embedding_error_category_from_code(self):
        error = EmbeddingError("bad key", EmbeddingErrorCode.INVALID_API_KEY, 401)

        assert error.category == ErrorCategory.AUTHENTICATION
        assert error.recoverable is False
        assert error.to_dict()["details"] == {"code": "INVALID_API_KEY", "status_code": 401}


class TestCategorizeProviderError:
    """Tests for provider exception translation."""

    @pytest.mark.parametrize("status,code,message", [
        (429, EmbeddingErrorCode.RATE_LIMIT, "Rate limit exceeded"),
        (401, EmbeddingErrorCode.INVALID_API_KEY, "Invalid API key"),
        (400, EmbeddingErrorCode.INVALID_REQUEST, "Invalid request"),
    ])
    def test_status_codes(self, status, code, message):
        error = categorize_provider_error(StatusError("upstream", status))

        assert error.code == code
        assert error.message == message
        assert error.status_code == status

    def test_exception_type_names(self):
        assert categorize_provider_error(RateLimitError()).code == EmbeddingErrorCode.RATE_LIMIT
        assert (
            categorize_provider_error(AuthenticationError()).code
            == EmbeddingErrorCode.INVALID_API_KEY
        )

    def test_unknown_status_is_generic(self):
        error = categorize_provider_error(StatusError("server exploded", 500))

        assert error.code == EmbeddingErrorCode.GENERIC
        assert error.message == "server exploded"
        assert error.status_code == 500

    def test_plain_exception_is_generic(self):
        error = categorize_provider_error(TimeoutError())

        assert error.code == EmbeddingErrorCode.GENERIC
        assert error.message == "Embedding provider error"

    def test_embedding_error_passes_through(self):
        original = EmbeddingError("already", EmbeddingErrorCode.RATE_LIMIT)
        assert categorize_provider_error(original) is original
