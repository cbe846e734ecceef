"""Trimester repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.assessment import TrimesterResult
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import trimester_changed
from academy.infrastructure.cache.keys import trimester_id_key, trimester_list_key
from academy.infrastructure.persistence.models.assessment import Trimester
from academy.infrastructure.persistence.repositories.base import BaseRepository

_TRIMESTER = TypeAdapter(TrimesterResult)
_TRIMESTERS = TypeAdapter(list[TrimesterResult])

_UPDATABLE = ("name", "order", "start_date", "end_date", "percentage", "is_active")


def _to_result(t: Trimester) -> TrimesterResult:
    return TrimesterResult(
        id=t.id,
        academic_year_id=t.academic_year_id,
        name=t.name,
        order=t.order,
        start_date=t.start_date,
        end_date=t.end_date,
        percentage=t.percentage,
        is_active=t.is_active,
    )


class TrimesterRepository(BaseRepository[Trimester]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, Trimester, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, trimester_id: str) -> TrimesterResult | None:
        async def load() -> TrimesterResult | None:
            row = await self._get_model(trimester_id)
            return _to_result(row) if row else None

        return await self._cached(trimester_id_key(trimester_id), load, _TRIMESTER)

    async def list_by_academic_year(self, academic_year_id: str) -> list[TrimesterResult]:
        """Trimesters of the year by order (position N of Trim{N}-{M})."""

        async def load() -> list[TrimesterResult]:
            rows = await self._scalars(
                select(Trimester)
                .where(Trimester.academic_year_id == academic_year_id)
                .order_by(Trimester.order)
            )
            return [_to_result(t) for t in rows]

        key = trimester_list_key(academic_year_id)
        return await self._cached(key, load, _TRIMESTERS) or []

    async def create(
        self,
        academic_year_id: str,
        name: str,
        order: int,
        start_date: date,
        end_date: date,
        percentage: float,
    ) -> TrimesterResult:
        """Raises ConflictException when the order is taken in the year."""
        row = Trimester(
            academic_year_id=academic_year_id,
            name=name,
            order=order,
            start_date=start_date,
            end_date=end_date,
            percentage=percentage,
        )
        try:
            return _to_result(await self._add(row))
        except IntegrityError:
            raise ConflictException(
                f"Trimester with order {order} already exists for this academic year",
                details={"order": order},
            )

    async def update(self, trimester_id: str, changes: dict[str, Any]) -> TrimesterResult | None:
        row = await self._get_model(trimester_id)
        if row is None:
            return None
        old = self._apply_changes(row, changes, _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def delete(self, trimester_id: str) -> bool:
        row = await self._get_model(trimester_id)
        if row is None:
            return False
        await self._remove(row)
        return True

    async def _on_after_create(self, obj: Trimester) -> None:
        await self._invalidate(trimester_changed(obj.id, obj.academic_year_id))

    async def _on_after_update(self, obj: Trimester, old: dict[str, Any]) -> None:
        await self._invalidate(trimester_changed(obj.id, obj.academic_year_id))

    async def _on_after_delete(self, obj: Trimester) -> None:
        await self._invalidate(
            trimester_changed(obj.id, obj.academic_year_id, deleted=True)
        )
