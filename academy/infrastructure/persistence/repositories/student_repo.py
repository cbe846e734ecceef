"""Student repository with cache-aside reads. Returns application DTOs."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.student import StudentResult
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import student_changed
from academy.infrastructure.cache.keys import (
    student_id_key,
    student_list_key,
    student_registration_key,
    student_year_list_key,
)
from academy.infrastructure.persistence.models.student import Student, StudentInscription
from academy.infrastructure.persistence.repositories.base import BaseRepository

_STUDENT = TypeAdapter(StudentResult)
_STUDENTS = TypeAdapter(list[StudentResult])

_UPDATABLE = ("registration_number", "first_name", "last_name", "is_active")


def _to_result(s: Student) -> StudentResult:
    return StudentResult(
        id=s.id,
        academy_id=s.academy_id,
        registration_number=s.registration_number,
        first_name=s.first_name,
        last_name=s.last_name,
        is_active=s.is_active,
    )


class StudentRepository(BaseRepository[Student]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, Student, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, student_id: str) -> StudentResult | None:
        async def load() -> StudentResult | None:
            row = await self._get_model(student_id)
            return _to_result(row) if row else None

        return await self._cached(student_id_key(student_id), load, _STUDENT)

    async def get_by_registration_number(
        self, academy_id: str, registration_number: str
    ) -> StudentResult | None:
        """Get student by registration number, unique within the academy."""

        async def load() -> StudentResult | None:
            result = await self.db.execute(
                select(Student).where(
                    Student.academy_id == academy_id,
                    Student.registration_number == registration_number,
                )
            )
            row = result.scalar_one_or_none()
            return _to_result(row) if row else None

        key = student_registration_key(academy_id, registration_number)
        return await self._cached(key, load, _STUDENT)

    async def list_all(self, academy_id: str) -> list[StudentResult]:
        async def load() -> list[StudentResult]:
            rows = await self._scalars(
                select(Student)
                .where(Student.academy_id == academy_id)
                .order_by(Student.last_name, Student.first_name)
            )
            return [_to_result(s) for s in rows]

        return await self._cached(student_list_key(academy_id), load, _STUDENTS) or []

    async def list_by_academic_year(
        self, academy_id: str, academic_year_id: str
    ) -> list[StudentResult]:
        """Students holding an inscription (any status) for the year."""

        async def load() -> list[StudentResult]:
            rows = await self._scalars(
                select(Student)
                .join(StudentInscription, StudentInscription.student_id == Student.id)
                .where(
                    Student.academy_id == academy_id,
                    StudentInscription.academic_year_id == academic_year_id,
                )
                .distinct()
                .order_by(Student.last_name, Student.first_name, Student.id)
            )
            return [_to_result(s) for s in rows]

        key = student_year_list_key(academy_id, academic_year_id)
        return await self._cached(key, load, _STUDENTS) or []

    async def create(
        self,
        academy_id: str,
        registration_number: str,
        first_name: str,
        last_name: str,
    ) -> StudentResult:
        """Raises ConflictException when the registration number is taken."""
        row = Student(
            academy_id=academy_id,
            registration_number=registration_number,
            first_name=first_name,
            last_name=last_name,
        )
        try:
            return _to_result(await self._add(row))
        except IntegrityError:
            raise ConflictException(
                f"Student with registration number '{registration_number}' already exists",
                details={"registration_number": registration_number},
            )

    async def update(self, student_id: str, changes: dict[str, Any]) -> StudentResult | None:
        row = await self._get_model(student_id)
        if row is None:
            return None
        old = self._apply_changes(row, changes, _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def _on_after_create(self, obj: Student) -> None:
        await self._invalidate(
            student_changed(
                obj.academy_id, obj.id, new_registration_number=obj.registration_number
            )
        )

    async def _on_after_update(self, obj: Student, old: dict[str, Any]) -> None:
        await self._invalidate(
            student_changed(
                obj.academy_id,
                obj.id,
                old_registration_number=old.get("registration_number"),
                new_registration_number=obj.registration_number,
            )
        )
