"""Custom error types and error handling utilities."""

from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    VALIDATION = "validation"
    STORAGE = "storage"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    UNKNOWN = "unknown"


class EmbeddingErrorCode(str, Enum):
    """Error codes surfaced by the embedding pipeline."""
    RATE_LIMIT = "RATE_LIMIT"
    INVALID_API_KEY = "INVALID_API_KEY"
    INVALID_REQUEST = "INVALID_REQUEST"
    GENERIC = "GENERIC"


_CODE_CATEGORIES = {
    EmbeddingErrorCode.RATE_LIMIT: ErrorCategory.RATE_LIMIT,
    EmbeddingErrorCode.INVALID_API_KEY: ErrorCategory.AUTHENTICATION,
    EmbeddingErrorCode.INVALID_REQUEST: ErrorCategory.VALIDATION,
    EmbeddingErrorCode.GENERIC: ErrorCategory.UNKNOWN,
}


class ServiceError(Exception):
    """Base exception for cache and embedding errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class CacheStoreError(ServiceError):
    """Remote cache tier failed during a store operation."""

    def __init__(self, message: str, operation: str, key: Optional[str] = None):
        details = {"operation": operation}
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            details=details,
            recoverable=True  # Storage errors might be temporary
        )
        self.operation = operation
        self.key = key


class EmbeddingError(ServiceError):
    """Embedding generation or validation failure."""

    def __init__(
        self,
        message: str,
        code: EmbeddingErrorCode = EmbeddingErrorCode.GENERIC,
        status_code: Optional[int] = None,
    ):
        details: Dict[str, Any] = {"code": code.value}
        if status_code:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            category=_CODE_CATEGORIES[code],
            details=details,
            recoverable=code in (EmbeddingErrorCode.RATE_LIMIT, EmbeddingErrorCode.GENERIC),
        )
        self.code = code
        self.status_code = status_code


# HTTP status -> (code, message) reported by the embedding pipeline
_STATUS_CODES = {
    429: (EmbeddingErrorCode.RATE_LIMIT, "Rate limit exceeded"),
    401: (EmbeddingErrorCode.INVALID_API_KEY, "Invalid API key"),
    400: (EmbeddingErrorCode.INVALID_REQUEST, "Invalid request"),
}

# Provider exception class names for clients that do not expose a status
_EXCEPTION_NAME_STATUS = {
    "RateLimitError": 429,
    "AuthenticationError": 401,
    "BadRequestError": 400,
}


def _status_of(error: Exception) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def categorize_provider_error(error: Exception) -> EmbeddingError:
    """Translate an embedding provider exception into an EmbeddingError.

    Uses a multi-stage classification:
    1. EmbeddingError instances pass through unchanged
    2. HTTP status carried by the exception (429, 401, 400)
    3. Exception class name (RateLimitError, AuthenticationError, ...)
    4. Fall back to GENERIC, keeping the original message and status
    """
    if isinstance(error, EmbeddingError):
        return error

    status = _status_of(error)
    if status not in _STATUS_CODES:
        status = _EXCEPTION_NAME_STATUS.get(type(error).__name__, status)

    if status in _STATUS_CODES:
        code, message = _STATUS_CODES[status]
        return EmbeddingError(message, code, status)

    return EmbeddingError(
        str(error) or "Embedding provider error",
        EmbeddingErrorCode.GENERIC,
        status,
    )
