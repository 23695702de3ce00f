"""
Scoped read-through cache with whole-scope invalidation.

Entries live under ``Marketo|<discriminator>|<natural key>|<scope prefix>``.
Each scope keeps a registry entry at ``cachekeys|<scope prefix>`` listing
every key written under it, so the whole scope can be dropped at once.
Expiry is absolute: it is fixed when an entry is written and reads never
extend it.

The cache is best effort. Backend and serialization errors are logged and
treated as a miss (reads) or a no-op (writes, invalidation); they never
reach the caller.
"""

import json
import logging
from typing import Any

from core.utils.json_serializers import dumps
from marketo.cache.backends import CacheBackend
from marketo.cache.scope import CacheScope

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600
KEY_NAMESPACE = "Marketo"
REGISTRY_NAMESPACE = "cachekeys"


class _CacheMiss:
    """Sentinel type for an absent cache entry."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CACHE_MISS"


CACHE_MISS = _CacheMiss()


class ScopedCache:
    """Cache bound to one CacheScope."""

    def __init__(
        self,
        backend: CacheBackend,
        scope: CacheScope,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.backend = backend
        self.scope = scope
        self.ttl_seconds = ttl_seconds

    def key_for(self, discriminator: str, natural_key: Any = "") -> str:
        return f"{KEY_NAMESPACE}|{discriminator}|{natural_key}|{self.scope.prefix}"

    @property
    def registry_key(self) -> str:
        return f"{REGISTRY_NAMESPACE}|{self.scope.prefix}"

    async def get(self, discriminator: str, natural_key: Any = "") -> Any:
        """Return the cached value, or CACHE_MISS."""
        key = self.key_for(discriminator, natural_key)
        try:
            raw = await self.backend.get(key)
            if raw is None:
                logger.debug(
                    "Cache miss",
                    extra={"cache_key": key, "cache_discriminator": discriminator, "cache_hit": False},
                )
                return CACHE_MISS
            value = json.loads(raw)
        except Exception:
            logger.warning(
                "Cache read failed, treating as miss",
                exc_info=True,
                extra={"cache_key": key, "cache_discriminator": discriminator},
            )
            return CACHE_MISS

        logger.debug(
            "Cache hit",
            extra={"cache_key": key, "cache_discriminator": discriminator, "cache_hit": True},
        )
        return value

    async def set(self, discriminator: str, natural_key: Any, value: Any) -> None:
        """Write value and record its key in the scope registry."""
        key = self.key_for(discriminator, natural_key)
        try:
            await self.backend.setex(key, self.ttl_seconds, dumps(value))
            registry = await self._read_registry()
            if key not in registry:
                registry.append(key)
            await self.backend.setex(self.registry_key, self.ttl_seconds, dumps(registry))
        except Exception:
            logger.warning(
                "Cache write failed, skipping",
                exc_info=True,
                extra={"cache_key": key, "cache_discriminator": discriminator},
            )
            return

        logger.debug(
            "Cache entry stored",
            extra={
                "cache_key": key,
                "cache_discriminator": discriminator,
                "ttl_seconds": self.ttl_seconds,
            },
        )

    async def invalidate_all(self) -> int:
        """Delete every key written under this scope and reset the registry.

        Returns:
            Number of registered keys that were deleted
        """
        try:
            registry = await self._read_registry()
            if registry:
                await self.backend.delete(*registry)
            await self.backend.setex(self.registry_key, self.ttl_seconds, "[]")
        except Exception:
            logger.warning(
                "Cache invalidation failed",
                exc_info=True,
                extra={"scope": self.scope.prefix},
            )
            return 0

        logger.debug(
            "Cache scope invalidated",
            extra={"scope": self.scope.prefix, "keys_invalidated": len(registry)},
        )
        return len(registry)

    async def _read_registry(self) -> list[str]:
        raw = await self.backend.get(self.registry_key)
        if not raw:
            return []
        keys = json.loads(raw)
        if not isinstance(keys, list):
            logger.warning(
                "Cache registry is not a list, resetting",
                extra={"cache_key": self.registry_key},
            )
            return []
        return [str(k) for k in keys]


__all__ = ["CACHE_MISS", "DEFAULT_TTL_SECONDS", "ScopedCache"]
