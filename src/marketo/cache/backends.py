"""
Cache backends for the scoped cache.

Backends store plain strings with a fixed expiry. Every backend failure is
raised as CacheBackendError; the scoped cache turns those into misses.
"""

import logging
import time
from typing import Callable, Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from core.errors.exceptions import CacheBackendError

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Async key/value store with per-key expiry."""

    async def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None if absent or expired."""
        ...

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Store value under key, expiring ttl_seconds from now."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        ...

    async def close(self) -> None:
        ...


class InMemoryCacheBackend:
    """Single-process backend with absolute expiry.

    Intended for local runs and tests. Expiry is checked lazily on read.

    Example:
        backend = InMemoryCacheBackend()
        await backend.setex("Marketo|Lead|a@b.com|s1:r1", 600, "{}")
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: dict[str, tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            return None
        return value

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        if ttl_seconds <= 0:
            raise CacheBackendError(f"Invalid TTL {ttl_seconds} for {key}")
        self._store[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                removed += 1
        return removed

    async def close(self) -> None:
        self._store.clear()

    def size(self) -> int:
        """Return current number of stored keys, expired ones included."""
        return len(self._store)


class RedisCacheBackend:
    """Redis-backed cache using ``redis.asyncio``.

    Attributes:
        url: Redis connection URL (``redis://host:port/db``).

    Example:
        backend = RedisCacheBackend("redis://localhost:6379/0")
        await backend.setex("cachekeys|s1:r1", 600, "[]")
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        client: Optional[aioredis.Redis] = None,
    ):
        self.url = url
        self._client = client or aioredis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise CacheBackendError(f"Redis GET failed for {key}", cause=e) from e
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as e:
            raise CacheBackendError(f"Redis SETEX failed for {key}", cause=e) from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self._client.delete(*keys))
        except RedisError as e:
            raise CacheBackendError(
                f"Redis DEL failed for {len(keys)} key(s)", cause=e
            ) from e

    async def close(self) -> None:
        await self._client.aclose()


def build_backend(redis_url: str = "") -> CacheBackend:
    """Redis when a URL is configured, in-memory otherwise."""
    if redis_url:
        logger.info("Using Redis cache backend")
        return RedisCacheBackend(redis_url)
    logger.info("Using in-memory cache backend")
    return InMemoryCacheBackend()


__all__ = [
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "build_backend",
]
