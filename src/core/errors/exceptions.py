"""
Unified exception hierarchy for the step core.

Provides typed exceptions with error categories so callers can tell
transient upstream trouble from permanent, operation-level failures.
"""

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class CoreError(Exception):
    """
    Base exception for all step core errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    @property
    def should_refresh_auth(self) -> bool:
        return self.category == ErrorCategory.AUTH

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Network/Connection Errors (Transient)
# =============================================================================


class TransientError(CoreError):
    """Base class for transient errors."""

    category = ErrorCategory.TRANSIENT


# =============================================================================
# Permanent Errors
# =============================================================================


class PermanentError(CoreError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class ConfigurationError(PermanentError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# Cache Errors
# =============================================================================


class CacheBackendError(TransientError):
    """
    Error from the cache backend (Redis or in-memory).

    Never escapes the scoped cache; raised by backends and converted to a
    miss or a no-op at the cache boundary.
    """

    pass


# =============================================================================
# Classification Utilities
# =============================================================================


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    # Already classified
    if isinstance(exc, CoreError):
        return exc.category

    category = getattr(exc, "category", None)
    if isinstance(category, ErrorCategory):
        return category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "name resolution",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timeout" in exc_str:
        return ErrorCategory.TRANSIENT

    if "401" in exc_str or "unauthorized" in exc_str or "access token" in exc_str:
        return ErrorCategory.AUTH

    if "429" in exc_str or "rate limit" in exc_str:
        return ErrorCategory.TRANSIENT

    if "403" in exc_str or "404" in exc_str or "not found" in exc_str:
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if exception could succeed if attempted again.

    The bulk engine itself never retries; this only feeds the
    ``is_retryable`` flag reported alongside a failure.
    """
    if isinstance(exc, CoreError):
        return exc.is_retryable

    retryable = getattr(exc, "is_retryable", None)
    if isinstance(retryable, bool):
        return retryable

    return classify_exception(exc) in (
        ErrorCategory.TRANSIENT,
        ErrorCategory.AUTH,
        ErrorCategory.UNKNOWN,
    )
