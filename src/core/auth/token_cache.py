"""
Thread-safe token cache with expiration tracking.

Caches identity-service access tokens per endpoint so that every API call
does not pay for a token round trip. Marketo tokens report their remaining
lifetime in ``expires_in`` (seconds); a token is treated as stale a little
before that so it cannot expire mid-request.

Example:
    >>> cache = TokenCache()
    >>> cache.set("https://123-abc-456.mktorest.com", "cdf01657-...", expires_in=3599)
    >>> token = cache.get("https://123-abc-456.mktorest.com")
    >>> if token:
    ...     # Use cached token
    >>> else:
    ...     # Token expired or not cached, fetch new one
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional
import threading


# Token timing constants
TOKEN_REFRESH_BUFFER_SECONDS = 60  # Refresh this long before expiry
TOKEN_DEFAULT_EXPIRY_SECONDS = 3600  # Marketo token lifetime when not reported


@dataclass
class CachedToken:
    """
    Token with acquisition timestamp for expiration tracking.

    Attributes:
        value: The access token string
        acquired_at: UTC timestamp when token was cached
        expires_in: Lifetime in seconds reported by the identity service
    """

    value: str
    acquired_at: datetime
    expires_in: int = TOKEN_DEFAULT_EXPIRY_SECONDS

    def is_valid(self, buffer_seconds: int = TOKEN_REFRESH_BUFFER_SECONDS) -> bool:
        """
        Check if token is still valid with safety buffer.

        Args:
            buffer_seconds: Seconds before expiry to consider token invalid.

        Returns:
            True if the token has more than buffer_seconds of life left.
        """
        age = datetime.now(timezone.utc) - self.acquired_at
        return age < timedelta(seconds=max(self.expires_in - buffer_seconds, 0))


class TokenCache:
    """
    Thread-safe cache for access tokens keyed by endpoint.

    All operations (get/set/clear) are protected by a threading.Lock so the
    cache can be shared between clients running in different threads.
    """

    def __init__(self, buffer_seconds: int = TOKEN_REFRESH_BUFFER_SECONDS):
        self._tokens: Dict[str, CachedToken] = {}
        self._lock = threading.Lock()
        self.buffer_seconds = buffer_seconds

    def get(self, resource: str) -> Optional[str]:
        """
        Get cached token if still valid.

        Args:
            resource: Endpoint the token was issued for

        Returns:
            Token string if cached and valid, None if expired or not found.
        """
        with self._lock:
            cached = self._tokens.get(resource)
            if cached and cached.is_valid(self.buffer_seconds):
                return cached.value
            return None

    def set(
        self,
        resource: str,
        token: str,
        expires_in: Optional[int] = None,
    ) -> None:
        """
        Cache a token with current timestamp.

        Args:
            resource: Endpoint to cache for
            token: Access token string to cache
            expires_in: Lifetime in seconds, defaults to one hour
        """
        with self._lock:
            self._tokens[resource] = CachedToken(
                value=token,
                acquired_at=datetime.now(timezone.utc),
                expires_in=(
                    int(expires_in)
                    if expires_in is not None
                    else TOKEN_DEFAULT_EXPIRY_SECONDS
                ),
            )

    def clear(self, resource: Optional[str] = None) -> None:
        """Clear one cached token, or all of them when resource is None."""
        with self._lock:
            if resource:
                self._tokens.pop(resource, None)
            else:
                self._tokens.clear()

    def get_age(self, resource: str) -> Optional[timedelta]:
        """Get age of cached token for diagnostics, or None if not cached."""
        with self._lock:
            cached = self._tokens.get(resource)
            if cached:
                return datetime.now(timezone.utc) - cached.acquired_at
            return None


__all__ = [
    "TokenCache",
    "CachedToken",
    "TOKEN_REFRESH_BUFFER_SECONDS",
    "TOKEN_DEFAULT_EXPIRY_SECONDS",
]
