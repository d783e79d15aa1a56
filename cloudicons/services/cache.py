"""Two-tier cache: in-process mappings in front of Redis.

Families and TTLs (from config):
  - metadata (icon:*) — unbounded dict in memory, 24h in Redis
  - content  (svg:*)  — FIFO-bounded in memory, 7 days in Redis

Graceful degradation: Redis errors are logged and treated as misses; a
failed write never reaches the caller.
"""

import asyncio
import logging
from collections.abc import MutableMapping

import redis.asyncio as aioredis
from cachetools import FIFOCache
from redis.exceptions import RedisError

from cloudicons.config import Settings
from cloudicons.errors import CacheDegradedError

logger = logging.getLogger(__name__)

REDIS_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class RedisTier:
    """Async Redis wrapper that reports every failure as CacheDegradedError."""

    def __init__(
        self,
        url: str = "",
        client: aioredis.Redis | None = None,
        connect_timeout: float = 3.0,
        socket_timeout: float = 2.0,
    ):
        self.url = url
        self.connect_timeout = connect_timeout
        self.socket_timeout = socket_timeout
        self._redis = client
        self._available = client is not None

    @property
    def available(self) -> bool:
        return self._available and self._redis is not None

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            if self._redis is None:
                self._redis = aioredis.from_url(
                    self.url,
                    decode_responses=True,
                    socket_connect_timeout=self.connect_timeout,
                    socket_timeout=self.socket_timeout,
                )
            await self._redis.ping()
            self._available = True
            return True
        except Exception as e:
            logger.warning("Redis connection failed — using in-memory tier only: %s", str(e)[:100])
            await self.disconnect()
            return False

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except REDIS_ERRORS as e:
                logger.debug("Redis close error: %s", str(e)[:100])
        self._redis = None
        self._available = False

    async def get(self, key: str) -> str | None:
        if not self.available:
            return None
        try:
            return await self._redis.get(key)
        except REDIS_ERRORS as e:
            raise CacheDegradedError(f"Redis GET failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        if not self.available:
            return
        try:
            await self._redis.setex(key, ttl, value)
        except REDIS_ERRORS as e:
            raise CacheDegradedError(f"Redis SET failed: {e}") from e


class CacheFamily:
    """One class of cached values: a key prefix, a memory mapping, a Redis TTL."""

    def __init__(
        self,
        prefix: str,
        memory: MutableMapping[str, str],
        remote: RedisTier | None,
        ttl: int,
        enabled: bool = True,
    ):
        self.prefix = prefix
        self.memory = memory
        self.remote = remote
        self.ttl = ttl
        self.enabled = enabled

    def make_key(self, *parts) -> str:
        """Case-insensitive key, e.g. svg:azure:storage-account:64."""
        return ":".join([self.prefix, *(str(p).lower() for p in parts)])

    async def get(self, key: str) -> str | None:
        """Memory first, then Redis; a Redis hit is copied into memory."""
        if not self.enabled:
            return None

        value = self.memory.get(key)
        if value is not None:
            logger.debug("Cache HIT (memory) | key=%s", key)
            return value

        if self.remote is not None:
            try:
                value = await self.remote.get(key)
            except CacheDegradedError as e:
                logger.warning("Cache degraded on GET | key=%s | %s", key, str(e)[:100])
                value = None
            if value is not None:
                logger.debug("Cache HIT (Redis) | key=%s", key)
                self.memory[key] = value
                return value

        logger.debug("Cache MISS | key=%s", key)
        return None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Write to memory and Redis."""
        if not self.enabled:
            return

        self.memory[key] = value

        if self.remote is not None:
            try:
                await self.remote.set(key, value, ttl or self.ttl)
            except CacheDegradedError as e:
                logger.warning("Cache degraded on SET | key=%s | %s", key, str(e)[:100])

    def clear_memory(self) -> None:
        self.memory.clear()


class TieredCache:
    """Metadata and content cache families sharing one Redis tier.

    Built once at service start and passed by reference to whoever needs it.
    """

    def __init__(
        self,
        remote: RedisTier | None = None,
        enabled: bool = True,
        metadata_ttl: int = 86400,
        content_ttl: int = 604800,
        memory_size: int = 1000,
    ):
        self.remote = remote
        self.enabled = enabled
        self.metadata = CacheFamily("icon", {}, remote, metadata_ttl, enabled)
        self.content = CacheFamily("svg", FIFOCache(maxsize=memory_size), remote, content_ttl, enabled)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TieredCache":
        remote = None
        if settings.cache_enabled and settings.redis_url:
            remote = RedisTier(
                settings.redis_url,
                connect_timeout=settings.redis_connect_timeout,
                socket_timeout=settings.redis_socket_timeout,
            )
        return cls(
            remote=remote,
            enabled=settings.cache_enabled,
            metadata_ttl=settings.icon_cache_ttl,
            content_ttl=settings.svg_cache_ttl,
            memory_size=settings.memory_cache_size,
        )

    async def connect(self) -> bool:
        if self.remote is None:
            logger.info("Redis caching not configured | cache_enabled=%s", self.enabled)
            return False
        return await self.remote.connect()

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.disconnect()
        self.metadata.clear_memory()
        self.content.clear_memory()
