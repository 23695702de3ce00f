"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- CoreError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    CacheBackendError,
    ConfigurationError,
    # Base classes
    CoreError,
    # Enums
    ErrorCategory,
    PermanentError,
    TransientError,
    # Classification utilities
    classify_exception,
    is_retryable_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "CoreError",
    "TransientError",
    "PermanentError",
    "ConfigurationError",
    "CacheBackendError",
    # Classification utilities
    "classify_exception",
    "is_retryable_error",
]
