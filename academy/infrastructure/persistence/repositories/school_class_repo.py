"""School class repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.school_class import SchoolClassResult
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import (
    school_class_changed,
    school_class_removed,
)
from academy.infrastructure.cache.keys import class_code_key, class_id_key, class_list_key
from academy.infrastructure.persistence.models.school_class import ClassYear, SchoolClass
from academy.infrastructure.persistence.models.student import StudentInscription
from academy.infrastructure.persistence.repositories.base import BaseRepository

_CLASS = TypeAdapter(SchoolClassResult)
_CLASSES = TypeAdapter(list[SchoolClassResult])

_UPDATABLE = ("code", "name", "level", "is_active")


def _to_result(c: SchoolClass) -> SchoolClassResult:
    return SchoolClassResult(
        id=c.id,
        academy_id=c.academy_id,
        code=c.code,
        name=c.name,
        level=c.level,
        is_active=c.is_active,
    )


class SchoolClassRepository(BaseRepository[SchoolClass]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, SchoolClass, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, class_id: str) -> SchoolClassResult | None:
        async def load() -> SchoolClassResult | None:
            row = await self._get_model(class_id)
            return _to_result(row) if row else None

        return await self._cached(class_id_key(class_id), load, _CLASS)

    async def get_by_code(self, academy_id: str, code: str) -> SchoolClassResult | None:
        async def load() -> SchoolClassResult | None:
            result = await self.db.execute(
                select(SchoolClass).where(
                    SchoolClass.academy_id == academy_id, SchoolClass.code == code
                )
            )
            row = result.scalar_one_or_none()
            return _to_result(row) if row else None

        return await self._cached(class_code_key(academy_id, code), load, _CLASS)

    async def _list(self, academy_id: str, *, active_only: bool) -> list[SchoolClassResult]:
        async def load() -> list[SchoolClassResult]:
            stmt = select(SchoolClass).where(SchoolClass.academy_id == academy_id)
            if active_only:
                stmt = stmt.where(SchoolClass.is_active.is_(True))
            rows = await self._scalars(stmt.order_by(SchoolClass.level, SchoolClass.name))
            return [_to_result(c) for c in rows]

        key = class_list_key(academy_id, active_only=active_only)
        return await self._cached(key, load, _CLASSES) or []

    async def list_all(self, academy_id: str) -> list[SchoolClassResult]:
        return await self._list(academy_id, active_only=False)

    async def list_active(self, academy_id: str) -> list[SchoolClassResult]:
        return await self._list(academy_id, active_only=True)

    async def create(
        self, academy_id: str, code: str, name: str, level: int
    ) -> SchoolClassResult:
        """Raises ConflictException when the code is taken in the academy."""
        row = SchoolClass(academy_id=academy_id, code=code, name=name, level=level)
        try:
            return _to_result(await self._add(row))
        except IntegrityError:
            raise ConflictException(
                f"Class with code '{code}' already exists", details={"code": code}
            )

    async def update(self, class_id: str, changes: dict[str, Any]) -> SchoolClassResult | None:
        row = await self._get_model(class_id)
        if row is None:
            return None
        old = self._apply_changes(row, changes, _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def delete(self, class_id: str) -> bool:
        """Delete the class; its class years, their inscriptions and course-classes
        go with it (ON DELETE CASCADE), so their cached lookups are evicted too.
        """
        row = await self._get_model(class_id)
        if row is None:
            return False
        class_years = (
            await self.db.execute(
                select(ClassYear.id, ClassYear.academic_year_id).where(
                    ClassYear.class_id == class_id
                )
            )
        ).all()
        inscriptions = []
        if class_years:
            inscriptions = (
                await self.db.execute(
                    select(
                        StudentInscription.student_id,
                        StudentInscription.academic_year_id,
                        StudentInscription.class_year_id,
                    ).where(
                        StudentInscription.class_year_id.in_([cy.id for cy in class_years])
                    )
                )
            ).all()
        academy_id, code = row.academy_id, row.code
        await self.db.delete(row)
        await self.db.flush()
        await self._invalidate(
            school_class_removed(
                academy_id,
                class_id,
                code,
                class_years=[tuple(cy) for cy in class_years],
                inscriptions=[tuple(i) for i in inscriptions],
            )
        )
        return True

    async def _on_after_create(self, obj: SchoolClass) -> None:
        await self._invalidate(
            school_class_changed(obj.academy_id, obj.id, new_code=obj.code)
        )

    async def _on_after_update(self, obj: SchoolClass, old: dict[str, Any]) -> None:
        await self._invalidate(
            school_class_changed(
                obj.academy_id, obj.id, old_code=old.get("code"), new_code=obj.code
            )
        )
