"""Tenant ownership checks for entities addressed by globally unique id.

Cached lookups by id are tenant-agnostic, so every use case that accepts an
id from the caller checks here that the entity belongs to the request's
academy. Foreign entities are reported as not found.
"""

from __future__ import annotations

from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
from academy.application.dtos.course import CourseResult
from academy.application.dtos.student import StudentResult
from academy.application.interfaces.repositories import (
    IAcademicTestRepository,
    IAcademicYearRepository,
    ICourseRepository,
    IStudentRepository,
    ITrimesterRepository,
)
from academy.domain.exceptions import NotFoundException


class OwnershipChecker:
    def __init__(
        self,
        academic_year_repo: IAcademicYearRepository,
        student_repo: IStudentRepository,
        course_repo: ICourseRepository,
        trimester_repo: ITrimesterRepository,
        test_repo: IAcademicTestRepository,
    ) -> None:
        self._year_repo = academic_year_repo
        self._student_repo = student_repo
        self._course_repo = course_repo
        self._trimester_repo = trimester_repo
        self._test_repo = test_repo

    async def require_student(self, tenant_id: str, student_id: str) -> StudentResult:
        student = await self._student_repo.get_by_id(student_id)
        if student is None or student.academy_id != tenant_id:
            raise NotFoundException("student", student_id)
        return student

    async def require_course(self, tenant_id: str, course_id: str) -> CourseResult:
        course = await self._course_repo.get_by_id(course_id)
        if course is None or course.academy_id != tenant_id:
            raise NotFoundException("course", course_id)
        return course

    async def year_of_trimester(self, tenant_id: str, trimester: TrimesterResult) -> str:
        """Return the trimester's academic year id if that year is the tenant's."""
        year = await self._year_repo.get_by_id(trimester.academic_year_id)
        if year is None or year.academy_id != tenant_id:
            raise NotFoundException("trimester", trimester.id)
        return year.id

    async def require_trimester(self, tenant_id: str, trimester_id: str) -> TrimesterResult:
        trimester = await self._trimester_repo.get_by_id(trimester_id)
        if trimester is None:
            raise NotFoundException("trimester", trimester_id)
        await self.year_of_trimester(tenant_id, trimester)
        return trimester

    async def require_test(
        self, tenant_id: str, test_id: str
    ) -> tuple[AcademicTestResult, TrimesterResult]:
        """Return the test and its trimester; NotFound unless both are the tenant's."""
        test = await self._test_repo.get_by_id(test_id)
        if test is None:
            raise NotFoundException("test", test_id)
        trimester = await self._trimester_repo.get_by_id(test.trimester_id)
        if trimester is None:
            raise NotFoundException("test", test_id)
        try:
            await self.year_of_trimester(tenant_id, trimester)
        except NotFoundException:
            raise NotFoundException("test", test_id) from None
        return test, trimester
