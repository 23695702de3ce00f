"""
Tests for TokenCache - thread-safe token caching with expiration.

Test Coverage:
    - Basic cache operations (get/set/clear)
    - Token expiration from expires_in with a refresh buffer
    - Thread safety with concurrent access
    - Diagnostics (get_age)
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from core.auth.token_cache import (
    TOKEN_DEFAULT_EXPIRY_SECONDS,
    TOKEN_REFRESH_BUFFER_SECONDS,
    CachedToken,
    TokenCache,
)

ENDPOINT = "https://123-abc-456.mktorest.com"


class TestCachedToken:
    """Tests for CachedToken dataclass."""

    def test_fresh_token_is_valid(self):
        token = CachedToken("t", datetime.now(timezone.utc), expires_in=3599)
        assert token.is_valid()

    def test_token_inside_buffer_is_invalid(self):
        acquired = datetime.now(timezone.utc) - timedelta(seconds=3599 - 30)
        token = CachedToken("t", acquired, expires_in=3599)
        assert not token.is_valid(buffer_seconds=60)

    def test_custom_buffer(self):
        acquired = datetime.now(timezone.utc) - timedelta(seconds=100)
        token = CachedToken("t", acquired, expires_in=300)
        assert token.is_valid(buffer_seconds=60)
        assert not token.is_valid(buffer_seconds=250)

    def test_lifetime_shorter_than_buffer_is_never_valid(self):
        token = CachedToken("t", datetime.now(timezone.utc), expires_in=30)
        assert not token.is_valid(buffer_seconds=60)

    def test_default_lifetime(self):
        token = CachedToken("t", datetime.now(timezone.utc))
        assert token.expires_in == TOKEN_DEFAULT_EXPIRY_SECONDS


class TestTokenCache:
    """Tests for TokenCache class."""

    @pytest.fixture
    def cache(self):
        return TokenCache()

    def test_init_empty_cache(self, cache):
        assert cache.get(ENDPOINT) is None

    def test_set_and_get_token(self, cache):
        cache.set(ENDPOINT, "token-1", expires_in=3599)
        assert cache.get(ENDPOINT) == "token-1"

    def test_expired_token_is_not_returned(self, cache):
        cache.set(ENDPOINT, "token-1", expires_in=TOKEN_REFRESH_BUFFER_SECONDS)
        assert cache.get(ENDPOINT) is None

    def test_tokens_are_per_endpoint(self, cache):
        cache.set(ENDPOINT, "a")
        cache.set("https://other.mktorest.com", "b")

        assert cache.get(ENDPOINT) == "a"
        assert cache.get("https://other.mktorest.com") == "b"

    def test_clear_one(self, cache):
        cache.set(ENDPOINT, "a")
        cache.set("https://other.mktorest.com", "b")

        cache.clear(ENDPOINT)

        assert cache.get(ENDPOINT) is None
        assert cache.get("https://other.mktorest.com") == "b"

    def test_clear_all(self, cache):
        cache.set(ENDPOINT, "a")
        cache.clear()
        assert cache.get(ENDPOINT) is None

    def test_get_age(self, cache):
        assert cache.get_age(ENDPOINT) is None

        cache.set(ENDPOINT, "a")

        age = cache.get_age(ENDPOINT)
        assert age is not None
        assert age < timedelta(seconds=5)

    def test_concurrent_access(self, cache):
        def writer(i):
            for _ in range(100):
                cache.set(f"{ENDPOINT}/{i}", f"token-{i}")
                cache.get(f"{ENDPOINT}/{i}")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(cache.get(f"{ENDPOINT}/{i}") == f"token-{i}" for i in range(8))
