"""Base repository: cached reads, persistence helpers and lifecycle hooks (cache invalidation)."""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import (
    InvalidationSet,
    InvalidationSink,
    Repopulation,
)
from academy.infrastructure.persistence.database import Base

T = TypeVar("T")
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository over one ORM model.

    Reads go through the CacheAsideStore (a store without cache backend reads
    straight from the database). Mutations hand their InvalidationSet to the
    sink; in request wiring the sink is a PostCommitInvalidator so eviction
    happens after COMMIT. Subclasses override _on_after_create,
    _on_after_update and _on_after_delete to build that set.
    """

    def __init__(
        self,
        db: AsyncSession,
        model: type[ModelType],
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        self.db = db
        self.model = model
        self.store = store or CacheAsideStore(None)
        self.sink = sink
        self.cache_ttl = cache_ttl

    async def _cached(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        adapter: TypeAdapter[T],
    ) -> T | None:
        return await self.store.get(key, loader, adapter, ttl=self.cache_ttl)

    async def _get_model(self, entity_id: str) -> ModelType | None:
        """Return a single ORM row by primary key (bypasses cache)."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def _scalars(self, stmt: Any) -> list[Any]:
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _add(self, obj: ModelType) -> ModelType:
        """Persist a new record and run _on_after_create hook."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        await self._on_after_create(obj)
        return obj

    async def _save(self, obj: ModelType, old: dict[str, Any]) -> ModelType:
        """Flush changes to an attached record and run _on_after_update hook.

        old holds the pre-update values of the changed columns so hooks can
        evict lookups by the previous code, category, etc.
        """
        await self.db.flush()
        await self.db.refresh(obj)
        await self._on_after_update(obj, old)
        return obj

    async def _remove(self, obj: ModelType) -> None:
        """Delete the record and run _on_after_delete hook."""
        await self.db.delete(obj)
        await self.db.flush()
        await self._on_after_delete(obj)

    @staticmethod
    def _apply_changes(
        obj: Any, changes: dict[str, Any], allowed: Iterable[str]
    ) -> dict[str, Any]:
        """Set allowed attributes on obj; return their previous values.

        Raises ValueError for a field that is not updatable.
        """
        allowed = frozenset(allowed)
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        old: dict[str, Any] = {}
        for name, value in changes.items():
            old[name] = getattr(obj, name)
            setattr(obj, name, value)
        return old

    async def _invalidate(
        self, invalidation: InvalidationSet, repopulate: Iterable[Repopulation] = ()
    ) -> None:
        if self.sink is not None:
            await self.sink.apply(invalidation, repopulate)

    async def _on_after_create(self, obj: ModelType) -> None:
        """Override in subclasses to invalidate caches."""

    async def _on_after_update(self, obj: ModelType, old: dict[str, Any]) -> None:
        """Override in subclasses to invalidate caches."""

    async def _on_after_delete(self, obj: ModelType) -> None:
        """Override in subclasses to invalidate caches."""
