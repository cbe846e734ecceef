"""Student operations (tenant-scoped), including enrollment for the scope's year."""

from __future__ import annotations

import logging
from typing import Any

from academy.application.dtos.enrollment import EnrollmentResult
from academy.application.dtos.student import StudentResult
from academy.application.interfaces.repositories import (
    IEnrollmentRepository,
    IStudentRepository,
)
from academy.domain.enums import InscriptionStatus
from academy.domain.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
)
from academy.domain.value_objects.scope import RequestScope

logger = logging.getLogger(__name__)


class StudentService:
    def __init__(
        self, student_repo: IStudentRepository, enrollment_repo: IEnrollmentRepository
    ) -> None:
        self._repo = student_repo
        self._enrollment_repo = enrollment_repo

    async def _require(self, tenant_id: str, student_id: str) -> StudentResult:
        student = await self._repo.get_by_id(student_id)
        if student is None or student.academy_id != tenant_id:
            raise NotFoundException("student", student_id)
        return student

    async def create_student(
        self, scope: RequestScope, registration_number: str, first_name: str, last_name: str
    ) -> StudentResult:
        number = registration_number.strip()
        if not number:
            raise BadRequestException(
                "Registration number is required", field="registration_number"
            )
        return await self._repo.create(scope.require_tenant(), number, first_name, last_name)

    async def get_student(self, scope: RequestScope, student_id: str) -> StudentResult:
        return await self._require(scope.require_tenant(), student_id)

    async def get_by_registration_number(
        self, scope: RequestScope, registration_number: str
    ) -> StudentResult:
        student = await self._repo.get_by_registration_number(
            scope.require_tenant(), registration_number
        )
        if student is None:
            raise NotFoundException(
                "student",
                registration_number,
                message=f"Student with registration number '{registration_number}' not found",
            )
        return student

    async def list_students(self, scope: RequestScope) -> list[StudentResult]:
        return await self._repo.list_all(scope.require_tenant())

    async def list_students_for_year(self, scope: RequestScope) -> list[StudentResult]:
        """Students inscribed for the scope's academic year."""
        return await self._repo.list_by_academic_year(
            scope.require_tenant(), scope.require_academic_year()
        )

    async def list_inscriptions(
        self, scope: RequestScope, class_year_id: str
    ) -> list[EnrollmentResult]:
        class_year = await self._enrollment_repo.get_class_year(class_year_id)
        if class_year is None or class_year.academy_id != scope.require_tenant():
            raise NotFoundException("class_year", class_year_id)
        return await self._enrollment_repo.list_inscriptions_by_class_year(class_year_id)

    async def update_student(
        self, scope: RequestScope, student_id: str, changes: dict[str, Any]
    ) -> StudentResult:
        await self._require(scope.require_tenant(), student_id)
        try:
            updated = await self._repo.update(student_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("student", student_id)
        return updated

    async def enroll(
        self,
        scope: RequestScope,
        student_id: str,
        class_year_id: str,
        status: InscriptionStatus = InscriptionStatus.CONFIRMED,
    ) -> EnrollmentResult:
        """Inscribe the student in a class year for the scope's academic year."""
        tenant_id = scope.require_tenant()
        year_id = scope.require_academic_year()
        await self._require(tenant_id, student_id)
        class_year = await self._enrollment_repo.get_class_year(class_year_id)
        if class_year is None or class_year.academy_id != tenant_id:
            raise NotFoundException("class_year", class_year_id)
        if class_year.academic_year_id != year_id:
            raise ForbiddenException(
                "Class year does not belong to the selected academic year",
                {"class_year_id": class_year_id},
            )
        enrollment = await self._enrollment_repo.enroll(
            student_id, year_id, class_year_id, status
        )
        logger.info(
            "Student %s enrolled in class year %s for year %s (%s)",
            student_id,
            class_year_id,
            year_id,
            status.value,
        )
        return enrollment

    async def change_enrollment_status(
        self, scope: RequestScope, enrollment_id: str, status: InscriptionStatus
    ) -> EnrollmentResult:
        tenant_id = scope.require_tenant()
        enrollment = await self._enrollment_repo.get_by_id(enrollment_id)
        if enrollment is None:
            raise NotFoundException("enrollment", enrollment_id)
        try:
            await self._require(tenant_id, enrollment.student_id)
        except NotFoundException:
            raise NotFoundException("enrollment", enrollment_id) from None
        updated = await self._enrollment_repo.update_status(enrollment_id, status)
        if updated is None:
            raise NotFoundException("enrollment", enrollment_id)
        return updated
