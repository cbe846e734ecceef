"""Course operations (tenant-scoped)."""

from __future__ import annotations

from typing import Any

from academy.application.dtos.course import CourseResult
from academy.application.interfaces.repositories import (
    ICourseRepository,
    IEnrollmentRepository,
    ISchoolClassRepository,
)
from academy.domain.exceptions import BadRequestException, NotFoundException
from academy.domain.value_objects.scope import RequestScope


class CourseService:
    def __init__(
        self,
        course_repo: ICourseRepository,
        enrollment_repo: IEnrollmentRepository,
        class_repo: ISchoolClassRepository,
    ) -> None:
        self._repo = course_repo
        self._enrollment_repo = enrollment_repo
        self._class_repo = class_repo

    async def _require(self, tenant_id: str, course_id: str) -> CourseResult:
        course = await self._repo.get_by_id(course_id)
        if course is None or course.academy_id != tenant_id:
            raise NotFoundException("course", course_id)
        return course

    async def create_course(
        self, scope: RequestScope, code: str, name: str, category: str | None = None
    ) -> CourseResult:
        return await self._repo.create(scope.require_tenant(), code.strip(), name, category)

    async def get_course(self, scope: RequestScope, course_id: str) -> CourseResult:
        return await self._require(scope.require_tenant(), course_id)

    async def get_course_by_code(self, scope: RequestScope, code: str) -> CourseResult:
        course = await self._repo.get_by_code(scope.require_tenant(), code)
        if course is None:
            raise NotFoundException("course", code, message=f"Course with code '{code}' not found")
        return course

    async def list_courses(
        self,
        scope: RequestScope,
        *,
        active_only: bool = False,
        category: str | None = None,
    ) -> list[CourseResult]:
        tenant_id = scope.require_tenant()
        if category is not None:
            return await self._repo.list_by_category(tenant_id, category)
        if active_only:
            return await self._repo.list_active(tenant_id)
        return await self._repo.list_all(tenant_id)

    async def list_courses_for_class_code(
        self, scope: RequestScope, class_code: str
    ) -> list[CourseResult]:
        """Courses actively taught to a class (by code) in the scope's academic year."""
        tenant_id = scope.require_tenant()
        school_class = await self._class_repo.get_by_code(tenant_id, class_code)
        if school_class is None:
            raise NotFoundException(
                "class", class_code, message=f"Class with code '{class_code}' not found"
            )
        class_year = await self._enrollment_repo.get_class_year_for_class(
            school_class.id, scope.require_academic_year()
        )
        if class_year is None:
            raise NotFoundException(
                "class_year",
                class_code,
                message=f"Class '{class_code}' is not open for the selected academic year",
            )
        courses = []
        for course_id in await self._enrollment_repo.course_ids_for_class_year(class_year.id):
            course = await self._repo.get_by_id(course_id)
            if course is not None:
                courses.append(course)
        return sorted(courses, key=lambda c: c.name)

    async def update_course(
        self, scope: RequestScope, course_id: str, changes: dict[str, Any]
    ) -> CourseResult:
        await self._require(scope.require_tenant(), course_id)
        try:
            updated = await self._repo.update(course_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("course", course_id)
        return updated

    async def delete_course(self, scope: RequestScope, course_id: str) -> None:
        await self._require(scope.require_tenant(), course_id)
        await self._repo.delete(course_id)

    async def assign_to_class_year(
        self,
        scope: RequestScope,
        course_id: str,
        class_year_id: str,
        *,
        is_active: bool = True,
    ) -> None:
        """Teach (or stop teaching) the course in a class year."""
        tenant_id = scope.require_tenant()
        await self._require(tenant_id, course_id)
        class_year = await self._enrollment_repo.get_class_year(class_year_id)
        if class_year is None or class_year.academy_id != tenant_id:
            raise NotFoundException("class_year", class_year_id)
        await self._enrollment_repo.assign_course(class_year_id, course_id, is_active=is_active)
