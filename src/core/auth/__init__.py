"""
Authentication module.

Components:
    - TokenCache: Thread-safe access token caching with expiry checks
"""

from .token_cache import (
    TOKEN_DEFAULT_EXPIRY_SECONDS,
    TOKEN_REFRESH_BUFFER_SECONDS,
    CachedToken,
    TokenCache,
)

__all__ = [
    "TokenCache",
    "CachedToken",
    "TOKEN_REFRESH_BUFFER_SECONDS",
    "TOKEN_DEFAULT_EXPIRY_SECONDS",
]
