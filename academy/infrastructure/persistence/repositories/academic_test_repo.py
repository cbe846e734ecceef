"""Test (assessment) repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.assessment import AcademicTestResult
from academy.domain.enums import TestType
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import academic_test_changed
from academy.infrastructure.cache.keys import test_id_key, test_list_key
from academy.infrastructure.persistence.models.assessment import AcademicTest
from academy.infrastructure.persistence.repositories.base import BaseRepository

_TEST = TypeAdapter(AcademicTestResult)
_TESTS = TypeAdapter(list[AcademicTestResult])

_FIELDS = ("name", "type", "date", "percentage", "description")
_UPDATABLE = (*_FIELDS, "trimester_id")


def _to_result(t: AcademicTest) -> AcademicTestResult:
    return AcademicTestResult(
        id=t.id,
        trimester_id=t.trimester_id,
        name=t.name,
        type=TestType(t.type),
        date=t.date,
        percentage=t.percentage,
        description=t.description,
    )


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    values = dict(data)
    if isinstance(values.get("type"), TestType):
        values["type"] = values["type"].value
    return values


class AcademicTestRepository(BaseRepository[AcademicTest]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, AcademicTest, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, test_id: str) -> AcademicTestResult | None:
        async def load() -> AcademicTestResult | None:
            row = await self._get_model(test_id)
            return _to_result(row) if row else None

        return await self._cached(test_id_key(test_id), load, _TEST)

    async def list_by_trimester(self, trimester_id: str) -> list[AcademicTestResult]:
        """Tests of the trimester by date (position M of Trim{N}-{M}); ties by name, id."""

        async def load() -> list[AcademicTestResult]:
            rows = await self._scalars(
                select(AcademicTest)
                .where(AcademicTest.trimester_id == trimester_id)
                .order_by(AcademicTest.date, AcademicTest.name, AcademicTest.id)
            )
            return [_to_result(t) for t in rows]

        return await self._cached(test_list_key(trimester_id), load, _TESTS) or []

    async def create(self, trimester_id: str, data: dict[str, Any]) -> AcademicTestResult:
        unknown = set(data) - set(_FIELDS)
        if unknown:
            raise ValueError(f"Unknown test fields: {', '.join(sorted(unknown))}")
        row = AcademicTest(trimester_id=trimester_id, **_column_values(data))
        return _to_result(await self._add(row))

    async def update(self, test_id: str, changes: dict[str, Any]) -> AcademicTestResult | None:
        row = await self._get_model(test_id)
        if row is None:
            return None
        old = self._apply_changes(row, _column_values(changes), _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def delete(self, test_id: str) -> bool:
        row = await self._get_model(test_id)
        if row is None:
            return False
        await self._remove(row)
        return True

    async def _on_after_create(self, obj: AcademicTest) -> None:
        await self._invalidate(
            academic_test_changed(obj.id, new_trimester_id=obj.trimester_id)
        )

    async def _on_after_update(self, obj: AcademicTest, old: dict[str, Any]) -> None:
        await self._invalidate(
            academic_test_changed(
                obj.id,
                old_trimester_id=old.get("trimester_id"),
                new_trimester_id=obj.trimester_id,
            )
        )

    async def _on_after_delete(self, obj: AcademicTest) -> None:
        await self._invalidate(
            academic_test_changed(obj.id, old_trimester_id=obj.trimester_id, deleted=True)
        )
