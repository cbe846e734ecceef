"""Cache-aside store: read-through on miss, durable-write-then-cache on put.

The cache is an optimization, never a dependency for correctness: with no
backend, or a backend raising CacheUnavailableException, every operation
degrades to the durable store. Cache write and delete failures are logged
and swallowed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError

from academy.domain.exceptions import CacheUnavailableException
from academy.infrastructure.cache.cache_protocol import CacheProtocol
from academy.infrastructure.cache.pattern_invalidators import (
    PatternInvalidator,
    ScanPatternInvalidator,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures the store absorbs; anything else is a programming error and propagates.
_CACHE_ERRORS = (CacheUnavailableException, redis.RedisError, OSError)


class CacheAsideStore:
    """Generic read-through / write-invalidate wrapper around a CacheProtocol backend.

    Values are (de)serialized with a pydantic TypeAdapter over the DTO type,
    so dates, decimals and nested dataclasses survive the JSON round-trip.
    """

    def __init__(
        self,
        cache: CacheProtocol | None,
        *,
        default_ttl: int = 300,
        pattern_invalidator: PatternInvalidator | None = None,
    ) -> None:
        self.cache = cache
        self.default_ttl = default_ttl
        if pattern_invalidator is None and cache is not None:
            pattern_invalidator = ScanPatternInvalidator(cache)
        self.pattern_invalidator = pattern_invalidator

    def _backend(self) -> CacheProtocol | None:
        """The cache when it can serve requests, else None."""
        cache = self.cache
        if cache is None or not cache.is_available():
            return None
        return cache

    async def _read(self, key: str, adapter: TypeAdapter[T]) -> T | None:
        cache = self._backend()
        if cache is None:
            return None
        try:
            raw = await cache.get(key)
        except _CACHE_ERRORS as e:
            logger.warning("Cache read failed for %s, using database: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Discarding cache entry %s that no longer matches its type", key)
            await self.invalidate(key)
            return None

    async def _write(
        self, key: str, value: T, adapter: TypeAdapter[T], ttl: int | None
    ) -> bool:
        cache = self._backend()
        if cache is None:
            return False
        effective_ttl = ttl or self.default_ttl
        try:
            stored = await cache.set(
                key, adapter.dump_python(value, mode="json"), ttl=effective_ttl
            )
        except _CACHE_ERRORS as e:
            logger.warning("Cache write failed for %s (non-fatal): %s", key, e)
            return False
        if not stored:
            logger.warning("Cache write not acknowledged for %s (non-fatal)", key)
            return False
        if self.pattern_invalidator is not None:
            try:
                await self.pattern_invalidator.track(key, effective_ttl)
            except _CACHE_ERRORS as e:
                # An untracked entry would outlive pattern invalidation until its TTL.
                logger.warning("Cache index update failed for %s, dropping entry: %s", key, e)
                await self.invalidate(key)
                return False
        return True

    async def get(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        adapter: TypeAdapter[T],
        *,
        ttl: int | None = None,
    ) -> T | None:
        """Return the cached value for key, loading and caching it on a miss.

        The write-back is awaited before returning. None results are not cached.
        """
        cached = await self._read(key, adapter)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            await self._write(key, value, adapter, ttl)
        return value

    async def put(
        self,
        key: str,
        writer: Callable[[], Awaitable[T]],
        adapter: TypeAdapter[T],
        *,
        ttl: int | None = None,
    ) -> T:
        """Run the durable write, then cache its result under key.

        If writer raises, the exception propagates and nothing is cached.
        """
        value = await writer()
        await self._write(key, value, adapter, ttl)
        return value

    async def prime(
        self, key: str, value: T, adapter: TypeAdapter[T], *, ttl: int | None = None
    ) -> bool:
        """Cache an already-committed value (repopulation after invalidation)."""
        return await self._write(key, value, adapter, ttl)

    async def invalidate(self, key: str) -> None:
        """Delete a single entry. Absent keys and backend failures are not errors."""
        cache = self._backend()
        if cache is None:
            return
        try:
            await cache.delete(key)
        except _CACHE_ERRORS as e:
            logger.warning("Cache invalidation failed for %s (expires at TTL): %s", key, e)

    async def invalidate_pattern(self, prefix: str) -> int:
        """Delete every entry under prefix. Failures are logged; returns deleted count."""
        if self._backend() is None or self.pattern_invalidator is None:
            return 0
        try:
            return await self.pattern_invalidator.invalidate_prefix(prefix)
        except _CACHE_ERRORS as e:
            logger.warning(
                "Cache pattern invalidation failed for %s* (entries expire at TTL): %s",
                prefix,
                e,
            )
            return 0

