"""Invalidation sets and the coordinator that applies them.

Order of operations for a mutation: durable write (committed) -> exact-key
invalidation -> pattern invalidation -> optional repopulation. Nothing here
raises: a failed invalidation is logged and the entry expires at its TTL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import TypeAdapter

from academy.core.constants import CACHE_KEY_SEP
from academy.infrastructure.cache.cache_aside import CacheAsideStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvalidationSet:
    """Exact keys and key prefixes to evict after a mutation."""

    keys: frozenset[str] = field(default_factory=frozenset)
    patterns: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        for prefix in self.patterns:
            if not prefix.endswith(CACHE_KEY_SEP):
                raise ValueError(
                    f"Invalidation pattern must be segment-aligned (end with {CACHE_KEY_SEP!r}): {prefix!r}"
                )

    @classmethod
    def of(
        cls, keys: Iterable[str] = (), patterns: Iterable[str] = ()
    ) -> InvalidationSet:
        return cls(frozenset(keys), frozenset(patterns))

    def with_keys(self, *keys: str) -> InvalidationSet:
        return InvalidationSet(self.keys | frozenset(keys), self.patterns)

    def with_patterns(self, *patterns: str) -> InvalidationSet:
        return InvalidationSet(self.keys, self.patterns | frozenset(patterns))

    def __or__(self, other: InvalidationSet) -> InvalidationSet:
        return InvalidationSet(self.keys | other.keys, self.patterns | other.patterns)

    @property
    def is_empty(self) -> bool:
        return not self.keys and not self.patterns


@dataclass(frozen=True)
class Repopulation:
    """A committed value to write back once its key has been evicted."""

    key: str
    value: Any
    adapter: TypeAdapter[Any]


class InvalidationSink(Protocol):
    """Receives the invalidation set of a mutation.

    InvalidationCoordinator applies it immediately (store calls that are atomic
    on their own); PostCommitInvalidator defers it until the SQL transaction
    commits.
    """

    async def apply(
        self,
        invalidation: InvalidationSet,
        repopulate: Iterable[Repopulation] = (),
    ) -> None:
        ...


class InvalidationCoordinator:
    """Evicts an InvalidationSet through a CacheAsideStore."""

    def __init__(self, store: CacheAsideStore) -> None:
        self.store = store

    async def apply(
        self,
        invalidation: InvalidationSet,
        repopulate: Iterable[Repopulation] = (),
    ) -> None:
        """Evict exact keys, then patterns, then prime fresh values."""
        if invalidation.is_empty:
            return
        for key in sorted(invalidation.keys):
            await self.store.invalidate(key)
        deleted = 0
        for prefix in sorted(invalidation.patterns):
            deleted += await self.store.invalidate_pattern(prefix)
        logger.debug(
            "Applied invalidation: %s keys, %s patterns (%s pattern matches)",
            len(invalidation.keys),
            len(invalidation.patterns),
            deleted,
        )
        for item in repopulate:
            await self.store.prime(item.key, item.value, item.adapter)
