"""Course repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.course import CourseResult
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import course_changed, course_removed
from academy.infrastructure.cache.keys import (
    course_category_key,
    course_code_key,
    course_id_key,
    course_list_key,
)
from academy.infrastructure.persistence.models.course import Course, CourseClass
from academy.infrastructure.persistence.models.note import Note
from academy.infrastructure.persistence.repositories.base import BaseRepository

_COURSE = TypeAdapter(CourseResult)
_COURSES = TypeAdapter(list[CourseResult])

_UPDATABLE = ("code", "name", "category", "is_active")


def _to_result(c: Course) -> CourseResult:
    return CourseResult(
        id=c.id,
        academy_id=c.academy_id,
        code=c.code,
        name=c.name,
        category=c.category,
        is_active=c.is_active,
    )


class CourseRepository(BaseRepository[Course]):
    """Courses. Lists are cached per academy: all, active, and per category."""

    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, Course, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, course_id: str) -> CourseResult | None:
        async def load() -> CourseResult | None:
            row = await self._get_model(course_id)
            return _to_result(row) if row else None

        return await self._cached(course_id_key(course_id), load, _COURSE)

    async def get_by_code(self, academy_id: str, code: str) -> CourseResult | None:
        async def load() -> CourseResult | None:
            result = await self.db.execute(
                select(Course).where(Course.academy_id == academy_id, Course.code == code)
            )
            row = result.scalar_one_or_none()
            return _to_result(row) if row else None

        return await self._cached(course_code_key(academy_id, code), load, _COURSE)

    async def _list(self, key: str, *criteria: Any) -> list[CourseResult]:
        async def load() -> list[CourseResult]:
            rows = await self._scalars(select(Course).where(*criteria).order_by(Course.name))
            return [_to_result(c) for c in rows]

        return await self._cached(key, load, _COURSES) or []

    async def list_all(self, academy_id: str) -> list[CourseResult]:
        return await self._list(
            course_list_key(academy_id, active_only=False), Course.academy_id == academy_id
        )

    async def list_active(self, academy_id: str) -> list[CourseResult]:
        return await self._list(
            course_list_key(academy_id, active_only=True),
            Course.academy_id == academy_id,
            Course.is_active.is_(True),
        )

    async def list_by_category(self, academy_id: str, category: str) -> list[CourseResult]:
        return await self._list(
            course_category_key(academy_id, category),
            Course.academy_id == academy_id,
            Course.category == category,
        )

    async def create(
        self, academy_id: str, code: str, name: str, category: str | None
    ) -> CourseResult:
        """Raises ConflictException when the code is taken in the academy."""
        row = Course(academy_id=academy_id, code=code, name=name, category=category)
        try:
            return _to_result(await self._add(row))
        except IntegrityError:
            raise ConflictException(
                f"Course with code '{code}' already exists", details={"code": code}
            )

    async def update(self, course_id: str, changes: dict[str, Any]) -> CourseResult | None:
        row = await self._get_model(course_id)
        if row is None:
            return None
        old = self._apply_changes(row, changes, _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def delete(self, course_id: str) -> bool:
        """Delete the course with its notes and course-classes (ON DELETE CASCADE).

        The cascaded rows are read first so their cached lookups are evicted
        along with the course's own keys.
        """
        row = await self._get_model(course_id)
        if row is None:
            return False
        notes = (
            await self.db.execute(
                select(Note.id, Note.student_id, Note.test_id).where(
                    Note.course_id == course_id
                )
            )
        ).all()
        class_year_ids = await self._scalars(
            select(CourseClass.class_year_id).where(CourseClass.course_id == course_id)
        )
        academy_id, code, category = row.academy_id, row.code, row.category
        await self.db.delete(row)
        await self.db.flush()
        await self._invalidate(
            course_removed(
                academy_id,
                course_id,
                code=code,
                category=category,
                notes=[tuple(n) for n in notes],
                class_year_ids=class_year_ids,
            )
        )
        return True

    async def _on_after_create(self, obj: Course) -> None:
        await self._invalidate(
            course_changed(
                obj.academy_id, obj.id, new_code=obj.code, new_category=obj.category
            )
        )

    async def _on_after_update(self, obj: Course, old: dict[str, Any]) -> None:
        await self._invalidate(
            course_changed(
                obj.academy_id,
                obj.id,
                old_code=old.get("code"),
                new_code=obj.code,
                old_category=old.get("category"),
                new_category=obj.category,
            )
        )

