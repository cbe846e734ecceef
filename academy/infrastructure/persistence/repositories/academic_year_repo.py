"""Academic year repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from datetime import date

from pydantic import TypeAdapter
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.academic_year import AcademicYearResult
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink, Repopulation
from academy.infrastructure.cache.invalidation_plans import academic_year_changed
from academy.infrastructure.cache.keys import (
    academic_year_current_key,
    academic_year_id_key,
    academic_year_list_key,
)
from academy.infrastructure.persistence.models.academic_year import AcademicYear
from academy.infrastructure.persistence.repositories.base import BaseRepository

_YEAR = TypeAdapter(AcademicYearResult)
_YEARS = TypeAdapter(list[AcademicYearResult])


def _to_result(y: AcademicYear) -> AcademicYearResult:
    return AcademicYearResult(
        id=y.id,
        academy_id=y.academy_id,
        name=y.name,
        start_date=y.start_date,
        end_date=y.end_date,
        is_current=y.is_current,
        is_active=y.is_active,
    )


class AcademicYearRepository(BaseRepository[AcademicYear]):
    """Academic years. Current-year lookups are cached per academy."""

    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int = 900,
    ) -> None:
        super().__init__(db, AcademicYear, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, academic_year_id: str) -> AcademicYearResult | None:
        """Get year by id (tenant-agnostic key; callers check academy_id)."""

        async def load() -> AcademicYearResult | None:
            year = await self._get_model(academic_year_id)
            return _to_result(year) if year else None

        return await self._cached(academic_year_id_key(academic_year_id), load, _YEAR)

    async def get_current(self, academy_id: str) -> AcademicYearResult | None:
        async def load() -> AcademicYearResult | None:
            result = await self.db.execute(
                select(AcademicYear).where(
                    AcademicYear.academy_id == academy_id,
                    AcademicYear.is_current.is_(True),
                )
            )
            year = result.scalars().first()
            return _to_result(year) if year else None

        return await self._cached(academic_year_current_key(academy_id), load, _YEAR)

    async def list_by_academy(self, academy_id: str) -> list[AcademicYearResult]:
        async def load() -> list[AcademicYearResult]:
            rows = await self._scalars(
                select(AcademicYear)
                .where(AcademicYear.academy_id == academy_id)
                .order_by(AcademicYear.start_date.desc())
            )
            return [_to_result(y) for y in rows]

        return await self._cached(academic_year_list_key(academy_id), load, _YEARS) or []

    async def create(
        self,
        academy_id: str,
        name: str,
        start_date: date,
        end_date: date,
        *,
        is_current: bool,
    ) -> AcademicYearResult:
        year = AcademicYear(
            academy_id=academy_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            is_current=is_current,
        )
        return _to_result(await self._add(year))

    async def set_current(
        self, academy_id: str, academic_year_id: str
    ) -> AcademicYearResult | None:
        """Flag academic_year_id current and every other year of the academy not current.

        One UPDATE statement, so no reader of the table sees two current years;
        "fetch" expires the flag on years already loaded in this session.
        Returns None when the year does not belong to the academy.
        """
        year = await self._get_model(academic_year_id)
        if year is None or year.academy_id != academy_id:
            return None
        previous = await self._scalars(
            select(AcademicYear.id).where(
                AcademicYear.academy_id == academy_id,
                AcademicYear.is_current.is_(True),
            )
        )
        await self.db.execute(
            update(AcademicYear)
            .where(AcademicYear.academy_id == academy_id)
            .values(is_current=AcademicYear.id == academic_year_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.refresh(year)
        result = _to_result(year)
        await self._invalidate(
            academic_year_changed(academy_id, academic_year_id, *previous),
            [Repopulation(academic_year_current_key(academy_id), result, _YEAR)],
        )
        return result

    async def _on_after_create(self, obj: AcademicYear) -> None:
        await self._invalidate(academic_year_changed(obj.academy_id, obj.id))
