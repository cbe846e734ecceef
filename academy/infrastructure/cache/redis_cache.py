"""Redis-based cache backend for the cache-aside layer.

Provides async Redis caching with TTL support, prefix scans and secondary
index sets. Values are stored as JSON. Key format lives in
academy.infrastructure.cache.keys.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from academy.core.config import Settings, get_settings
from academy.domain.exceptions import CacheUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """Async Redis cache service with TTL support.

    Uses academy.core.config for connection settings. Call connect() at
    startup and disconnect() at shutdown. Timeouts and lost connections are
    retried once after a reconnect, then raised as CacheUnavailableException
    so the cache-aside store can fall through to the database.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional Redis client for testing or DI.
            settings: Optional settings (defaults to get_settings()).
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=self.settings.redis_socket_timeout,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    "Redis cache connected: %s:%s",
                    self.settings.redis_host,
                    self.settings.redis_port,
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning(
                    "Redis connection failed: %s. Cache disabled.",
                    e,
                )
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after disconnect. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing stale Redis connection")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _call(
        self,
        operation: str,
        key: str | None,
        fn: Callable[[redis.Redis], Awaitable[T]],
    ) -> T:
        """Run fn against the client, reconnecting once on connection loss.

        Raises:
            CacheUnavailableException: When the backend stays unreachable.
        """
        if self.redis is None:
            raise CacheUnavailableException(operation, key)
        try:
            return await fn(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as first:
            if await self._reconnect() and self.redis is not None:
                try:
                    return await fn(self.redis)
                except (redis.ConnectionError, redis.TimeoutError) as e:
                    raise CacheUnavailableException(operation, key) from e
            logger.warning("Cache %s unavailable for %s (Redis disconnected)", operation, key)
            raise CacheUnavailableException(operation, key) from first

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing.

        Args:
            key: Cache key (use academy.infrastructure.cache.keys builders).

        Returns:
            Cached value or None.

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return None
        try:
            value = await self._call("get", key, lambda r: r.get(key))
        except redis.RedisError:
            logger.exception("Cache get error for key %s", key)
            return None
        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success.

        Args:
            key: Cache key.
            value: Value to cache (JSON-serializable).
            ttl: Time-to-live in seconds (default 300).

        Returns:
            True if stored, False otherwise.

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return False
        serialized = json.dumps(value)
        try:
            await self._call("set", key, lambda r: r.setex(key, ttl, serialized))
        except redis.RedisError:
            logger.exception("Cache set error for key %s", key)
            return False
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Remove key from cache. Returns True if the command ran.

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return False
        try:
            await self._call("delete", key, lambda r: r.delete(key))
        except redis.RedisError:
            logger.exception("Cache delete error for key %s", key)
            return False
        logger.debug("Cache DELETE: %s", key)
        return True

    async def delete_many(self, keys: list[str]) -> int:
        """UNLINK keys in chunks through a non-transactional pipeline.

        Returns:
            Number of keys that existed and were removed.

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available() or not keys:
            return 0
        chunk_size = self.settings.cache_scan_batch_size

        async def _unlink(r: redis.Redis) -> int:
            deleted = 0
            for start in range(0, len(keys), chunk_size):
                chunk = keys[start : start + chunk_size]
                async with r.pipeline(transaction=False) as pipe:
                    pipe.unlink(*chunk)
                    results = await pipe.execute()
                deleted += sum(int(res or 0) for res in results)
            return deleted

        try:
            return await self._call("delete_many", None, _unlink)
        except redis.RedisError:
            logger.exception("Cache delete_many error (%s keys)", len(keys))
            return 0

    async def scan_keys(self, prefix: str) -> list[str]:
        """Return keys starting with prefix using SCAN (never KEYS).

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return []
        count = self.settings.cache_scan_batch_size

        async def _scan(r: redis.Redis) -> list[str]:
            return [key async for key in r.scan_iter(match=f"{prefix}*", count=count)]

        return await self._call("scan", prefix, _scan)

    async def add_to_index(self, index: str, member: str, ttl: int) -> None:
        """SADD member to index and refresh the index TTL in one round-trip.

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return

        async def _add(r: redis.Redis) -> None:
            async with r.pipeline(transaction=False) as pipe:
                pipe.sadd(index, member)
                pipe.expire(index, ttl)
                await pipe.execute()

        await self._call("add_to_index", index, _add)

    async def index_members(self, index: str) -> list[str]:
        """Return members of the index set (empty when absent).

        Raises:
            CacheUnavailableException: Redis unreachable.
        """
        if not self.is_available():
            return []
        members = await self._call("index_members", index, lambda r: r.smembers(index))
        return sorted(members)
