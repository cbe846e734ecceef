"""Cache: Redis backend, scoped keys, cache-aside store and invalidation.

Repositories read through CacheAsideStore and hand the InvalidationSet of each
mutation to an InvalidationSink; key format lives in keys.py only.
"""

from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.cache_protocol import CacheProtocol
from academy.infrastructure.cache.invalidation import (
    InvalidationCoordinator,
    InvalidationSet,
    InvalidationSink,
    Repopulation,
)
from academy.infrastructure.cache.keys import scoped_key, scoped_prefix
from academy.infrastructure.cache.pattern_invalidators import (
    IndexedPatternInvalidator,
    PatternInvalidator,
    ScanPatternInvalidator,
    build_pattern_invalidator,
)
from academy.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheAsideStore",
    "CacheProtocol",
    "CacheService",
    "IndexedPatternInvalidator",
    "InvalidationCoordinator",
    "InvalidationSet",
    "InvalidationSink",
    "PatternInvalidator",
    "Repopulation",
    "ScanPatternInvalidator",
    "build_pattern_invalidator",
    "scoped_key",
    "scoped_prefix",
]
