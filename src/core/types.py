"""
Core types used across modules.

This module provides the base enums shared across the core library to
ensure consistency and type safety.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Used by the API client and the bulk engine to decide how an upstream
    failure is reported back to the step that triggered it.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., network timeouts, 429/5xx responses)
        AUTH: Authentication failures requiring a new access token
              (e.g., 401 responses, expired or invalid Marketo tokens)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, unknown partition, validation errors)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = [
    "ErrorCategory",
]
