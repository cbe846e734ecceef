"""Prefix (pattern) invalidation strategies.

Two implementations of PatternInvalidator keep the invalidation coordinator
backend-agnostic:

* ScanPatternInvalidator walks the backend key space (Redis SCAN MATCH) and
  unlinks what it finds.
* IndexedPatternInvalidator records every cached key under each of its
  segment-aligned prefixes in a secondary index set and deletes the indexed
  members; it needs no scan support.
"""

from __future__ import annotations

import logging
from typing import Protocol

from academy.core.config import Settings
from academy.infrastructure.cache.cache_protocol import CacheProtocol
from academy.infrastructure.cache.keys import index_key, key_prefixes

logger = logging.getLogger(__name__)


class PatternInvalidator(Protocol):
    """Deletes every cache entry under a key prefix."""

    async def track(self, key: str, ttl: int) -> None:
        """Record that key was just written (no-op for scan-based backends)."""
        ...

    async def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix; return count deleted."""
        ...


class ScanPatternInvalidator:
    """SCAN + batched UNLINK. Suited to infrequent invalidation, never to hot-path reads."""

    def __init__(self, cache: CacheProtocol) -> None:
        self.cache = cache

    async def track(self, key: str, ttl: int) -> None:
        return None

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = await self.cache.scan_keys(prefix)
        if not keys:
            return 0
        deleted = await self.cache.delete_many(keys)
        logger.info("Cache INVALIDATE: %s* (%s keys)", prefix, deleted)
        return deleted


class IndexedPatternInvalidator:
    """Secondary index of cached keys per prefix.

    Index sets live slightly longer than the entries they list, so an index
    never forgets a live entry; members whose entry already expired are
    deleted harmlessly.
    """

    def __init__(self, cache: CacheProtocol, *, index_ttl_margin: int = 60) -> None:
        self.cache = cache
        self.index_ttl_margin = index_ttl_margin

    async def track(self, key: str, ttl: int) -> None:
        for prefix in key_prefixes(key):
            await self.cache.add_to_index(
                index_key(prefix), key, ttl + self.index_ttl_margin
            )

    async def invalidate_prefix(self, prefix: str) -> int:
        index = index_key(prefix)
        members = await self.cache.index_members(index)
        if not members:
            return 0
        deleted = await self.cache.delete_many(members)
        await self.cache.delete(index)
        logger.info("Cache INVALIDATE (index): %s* (%s keys)", prefix, deleted)
        return deleted


def build_pattern_invalidator(
    cache: CacheProtocol, settings: Settings
) -> PatternInvalidator:
    """Return the invalidator selected by settings.cache_invalidation_strategy."""
    if settings.cache_invalidation_strategy == "index":
        return IndexedPatternInvalidator(cache)
    return ScanPatternInvalidator(cache)
