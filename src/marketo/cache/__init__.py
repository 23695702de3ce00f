"""Scoped read-through cache for the Marketo client."""

from marketo.cache.backends import (
    CacheBackend,
    InMemoryCacheBackend,
    RedisCacheBackend,
    build_backend,
)
from marketo.cache.scope import CacheScope
from marketo.cache.scoped_cache import CACHE_MISS, DEFAULT_TTL_SECONDS, ScopedCache

__all__ = [
    "CACHE_MISS",
    "CacheBackend",
    "CacheScope",
    "DEFAULT_TTL_SECONDS",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "ScopedCache",
    "build_backend",
]
