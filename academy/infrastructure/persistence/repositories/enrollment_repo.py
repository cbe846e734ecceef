"""Enrollment repository: class years, course-classes and student inscriptions.

Answers "is this student enrolled in this course for this year?" from two
cached lookups: the class year of the student's confirmed inscription for the
year, and the ids of courses actively taught in that class year.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.enrollment import EnrollmentResult
from academy.application.dtos.school_class import ClassYearResult
from academy.domain.enums import InscriptionStatus
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import (
    class_year_changed,
    course_class_changed,
    enrollment_changed,
)
from academy.infrastructure.cache.keys import (
    class_year_by_class_list_key,
    class_year_for_class_key,
    class_year_id_key,
    class_year_list_key,
    course_class_courses_key,
    enrollment_class_year_key,
    enrollment_list_key,
)
from academy.infrastructure.persistence.models.academic_year import AcademicYear
from academy.infrastructure.persistence.models.course import CourseClass
from academy.infrastructure.persistence.models.school_class import ClassYear, SchoolClass
from academy.infrastructure.persistence.models.student import StudentInscription
from academy.infrastructure.persistence.repositories.base import BaseRepository

_CLASS_YEAR_ID = TypeAdapter(str)
_COURSE_IDS = TypeAdapter(list[str])
_CLASS_YEAR = TypeAdapter(ClassYearResult)
_CLASS_YEARS = TypeAdapter(list[ClassYearResult])
_ENROLLMENTS = TypeAdapter(list[EnrollmentResult])

_CLASS_YEAR_UPDATABLE = ("section", "room_number", "max_students", "is_active")


def _to_result(i: StudentInscription) -> EnrollmentResult:
    return EnrollmentResult(
        id=i.id,
        student_id=i.student_id,
        academic_year_id=i.academic_year_id,
        class_year_id=i.class_year_id,
        status=InscriptionStatus(i.status),
    )


def _class_year_result(cy: ClassYear) -> ClassYearResult:
    return ClassYearResult(
        id=cy.id,
        academy_id=cy.academy_id,
        class_id=cy.class_id,
        academic_year_id=cy.academic_year_id,
        section=cy.section,
        room_number=cy.room_number,
        max_students=cy.max_students,
        is_active=cy.is_active,
    )


class EnrollmentRepository(BaseRepository[StudentInscription]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, StudentInscription, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, enrollment_id: str) -> EnrollmentResult | None:
        row = await self._get_model(enrollment_id)
        return _to_result(row) if row else None

    async def get_class_year_id(
        self, student_id: str, academic_year_id: str
    ) -> str | None:
        async def load() -> str | None:
            result = await self.db.execute(
                select(StudentInscription.class_year_id)
                .where(
                    StudentInscription.student_id == student_id,
                    StudentInscription.academic_year_id == academic_year_id,
                    StudentInscription.status == InscriptionStatus.CONFIRMED.value,
                )
                .order_by(StudentInscription.created_at.desc())
            )
            return result.scalars().first()

        key = enrollment_class_year_key(student_id, academic_year_id)
        return await self._cached(key, load, _CLASS_YEAR_ID)

    async def course_ids_for_class_year(self, class_year_id: str) -> list[str]:
        async def load() -> list[str]:
            return await self._scalars(
                select(CourseClass.course_id)
                .where(
                    CourseClass.class_year_id == class_year_id,
                    CourseClass.is_active.is_(True),
                )
                .order_by(CourseClass.course_id)
            )

        key = course_class_courses_key(class_year_id)
        return await self._cached(key, load, _COURSE_IDS) or []

    async def is_enrolled(
        self, student_id: str, course_id: str, academic_year_id: str
    ) -> bool:
        class_year_id = await self.get_class_year_id(student_id, academic_year_id)
        if class_year_id is None:
            return False
        return course_id in await self.course_ids_for_class_year(class_year_id)

    async def list_inscriptions_by_class_year(
        self, class_year_id: str
    ) -> list[EnrollmentResult]:
        async def load() -> list[EnrollmentResult]:
            rows = await self._scalars(
                select(StudentInscription)
                .where(StudentInscription.class_year_id == class_year_id)
                .order_by(StudentInscription.created_at, StudentInscription.id)
            )
            return [_to_result(i) for i in rows]

        key = enrollment_list_key(class_year_id)
        return await self._cached(key, load, _ENROLLMENTS) or []

    # ---- Class years --------------------------------------------------------

    async def _get_class_year_model(self, class_year_id: str) -> ClassYear | None:
        result = await self.db.execute(select(ClassYear).where(ClassYear.id == class_year_id))
        return result.scalar_one_or_none()

    async def get_class_year(self, class_year_id: str) -> ClassYearResult | None:
        async def load() -> ClassYearResult | None:
            row = await self._get_class_year_model(class_year_id)
            return _class_year_result(row) if row else None

        return await self._cached(class_year_id_key(class_year_id), load, _CLASS_YEAR)

    async def get_class_year_for_class(
        self, class_id: str, academic_year_id: str
    ) -> ClassYearResult | None:
        async def load() -> ClassYearResult | None:
            result = await self.db.execute(
                select(ClassYear).where(
                    ClassYear.class_id == class_id,
                    ClassYear.academic_year_id == academic_year_id,
                )
            )
            row = result.scalar_one_or_none()
            return _class_year_result(row) if row else None

        key = class_year_for_class_key(class_id, academic_year_id)
        return await self._cached(key, load, _CLASS_YEAR)

    async def list_class_years_by_academic_year(
        self, academy_id: str, academic_year_id: str
    ) -> list[ClassYearResult]:
        """Class years opened for the year, ordered by class level then name."""

        async def load() -> list[ClassYearResult]:
            rows = await self._scalars(
                select(ClassYear)
                .join(SchoolClass, SchoolClass.id == ClassYear.class_id)
                .where(
                    ClassYear.academy_id == academy_id,
                    ClassYear.academic_year_id == academic_year_id,
                )
                .order_by(SchoolClass.level, SchoolClass.name, ClassYear.id)
            )
            return [_class_year_result(cy) for cy in rows]

        key = class_year_list_key(academy_id, academic_year_id)
        return await self._cached(key, load, _CLASS_YEARS) or []

    async def list_class_years_by_class(self, class_id: str) -> list[ClassYearResult]:
        """Every opening of a class, most recent academic year first."""

        async def load() -> list[ClassYearResult]:
            rows = await self._scalars(
                select(ClassYear)
                .join(AcademicYear, AcademicYear.id == ClassYear.academic_year_id)
                .where(ClassYear.class_id == class_id)
                .order_by(AcademicYear.start_date.desc())
            )
            return [_class_year_result(cy) for cy in rows]

        key = class_year_by_class_list_key(class_id)
        return await self._cached(key, load, _CLASS_YEARS) or []

    async def open_class_year(
        self, academy_id: str, class_id: str, academic_year_id: str
    ) -> str:
        """Open a class for an academic year; return the class year id."""
        class_year = ClassYear(
            academy_id=academy_id, class_id=class_id, academic_year_id=academic_year_id
        )
        self.db.add(class_year)
        try:
            await self.db.flush()
        except IntegrityError:
            raise ConflictException(
                "Class is already open for this academic year",
                details={"class_id": class_id, "academic_year_id": academic_year_id},
            )
        await self._invalidate(
            class_year_changed(academy_id, class_year.id, class_id, academic_year_id)
        )
        return class_year.id

    async def update_class_year(
        self, class_year_id: str, changes: dict[str, Any]
    ) -> ClassYearResult | None:
        """Change section, room, capacity or active flag of a class year."""
        row = await self._get_class_year_model(class_year_id)
        if row is None:
            return None
        self._apply_changes(row, changes, _CLASS_YEAR_UPDATABLE)
        await self.db.flush()
        await self.db.refresh(row)
        await self._invalidate(
            class_year_changed(row.academy_id, row.id, row.class_id, row.academic_year_id)
        )
        return _class_year_result(row)

    async def assign_course(
        self, class_year_id: str, course_id: str, *, is_active: bool = True
    ) -> None:
        """Teach (or stop teaching) a course in a class year."""
        result = await self.db.execute(
            select(CourseClass).where(
                CourseClass.class_year_id == class_year_id,
                CourseClass.course_id == course_id,
            )
        )
        link = result.scalar_one_or_none()
        if link is None:
            self.db.add(
                CourseClass(
                    class_year_id=class_year_id, course_id=course_id, is_active=is_active
                )
            )
        else:
            link.is_active = is_active
        await self.db.flush()
        await self._invalidate(course_class_changed(class_year_id))

    # ---- Inscriptions -------------------------------------------------------

    async def enroll(
        self,
        student_id: str,
        academic_year_id: str,
        class_year_id: str,
        status: InscriptionStatus,
    ) -> EnrollmentResult:
        row = StudentInscription(
            student_id=student_id,
            academic_year_id=academic_year_id,
            class_year_id=class_year_id,
            status=status.value,
        )
        return _to_result(await self._add(row))

    async def update_status(
        self, enrollment_id: str, status: InscriptionStatus
    ) -> EnrollmentResult | None:
        row = await self._get_model(enrollment_id)
        if row is None:
            return None
        old = self._apply_changes(row, {"status": status.value}, ("status",))
        return _to_result(await self._save(row, old))

    async def _inscription_changed(self, obj: StudentInscription) -> None:
        # Inscriptions carry no academy_id; the class year does.
        result = await self.db.execute(
            select(ClassYear.academy_id).where(ClassYear.id == obj.class_year_id)
        )
        await self._invalidate(
            enrollment_changed(
                obj.student_id,
                obj.academic_year_id,
                academy_id=result.scalar_one_or_none(),
                class_year_ids=(obj.class_year_id,),
            )
        )

    async def _on_after_create(self, obj: StudentInscription) -> None:
        await self._inscription_changed(obj)

    async def _on_after_update(self, obj: StudentInscription, old: dict) -> None:
        await self._inscription_changed(obj)
