"""School class operations (tenant-scoped)."""

from __future__ import annotations

from typing import Any

from academy.application.dtos.school_class import ClassYearResult, SchoolClassResult
from academy.application.interfaces.repositories import (
    IEnrollmentRepository,
    ISchoolClassRepository,
)
from academy.domain.exceptions import BadRequestException, ForbiddenException, NotFoundException
from academy.domain.value_objects.scope import RequestScope


class SchoolClassService:
    def __init__(
        self, class_repo: ISchoolClassRepository, enrollment_repo: IEnrollmentRepository
    ) -> None:
        self._repo = class_repo
        self._enrollment_repo = enrollment_repo

    async def _require(self, tenant_id: str, class_id: str) -> SchoolClassResult:
        school_class = await self._repo.get_by_id(class_id)
        if school_class is None or school_class.academy_id != tenant_id:
            raise NotFoundException("class", class_id)
        return school_class

    async def create_class(
        self, scope: RequestScope, code: str, name: str, level: int
    ) -> SchoolClassResult:
        """Raises ConflictException (from the repository) for a duplicate code."""
        return await self._repo.create(scope.require_tenant(), code.strip(), name, level)

    async def get_class(self, scope: RequestScope, class_id: str) -> SchoolClassResult:
        return await self._require(scope.require_tenant(), class_id)

    async def get_class_by_code(self, scope: RequestScope, code: str) -> SchoolClassResult:
        school_class = await self._repo.get_by_code(scope.require_tenant(), code)
        if school_class is None:
            raise NotFoundException("class", code, message=f"Class with code '{code}' not found")
        return school_class

    async def list_classes(
        self, scope: RequestScope, *, active_only: bool = False
    ) -> list[SchoolClassResult]:
        tenant_id = scope.require_tenant()
        if active_only:
            return await self._repo.list_active(tenant_id)
        return await self._repo.list_all(tenant_id)

    async def update_class(
        self, scope: RequestScope, class_id: str, changes: dict[str, Any]
    ) -> SchoolClassResult:
        await self._require(scope.require_tenant(), class_id)
        try:
            updated = await self._repo.update(class_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("class", class_id)
        return updated

    async def delete_class(self, scope: RequestScope, class_id: str) -> None:
        await self._require(scope.require_tenant(), class_id)
        await self._repo.delete(class_id)

    async def open_for_year(self, scope: RequestScope, class_id: str) -> str:
        """Open the class for the scope's academic year; return the class year id."""
        tenant_id = scope.require_tenant()
        school_class = await self._require(tenant_id, class_id)
        if not school_class.is_active:
            raise ForbiddenException(
                f"Class {school_class.code} is inactive", {"class_id": class_id}
            )
        return await self._enrollment_repo.open_class_year(
            tenant_id, class_id, scope.require_academic_year()
        )

    async def _require_class_year(self, tenant_id: str, class_year_id: str) -> ClassYearResult:
        class_year = await self._enrollment_repo.get_class_year(class_year_id)
        if class_year is None or class_year.academy_id != tenant_id:
            raise NotFoundException("class_year", class_year_id)
        return class_year

    async def get_class_year(self, scope: RequestScope, class_year_id: str) -> ClassYearResult:
        return await self._require_class_year(scope.require_tenant(), class_year_id)

    async def get_class_year_for_class(
        self, scope: RequestScope, class_id: str
    ) -> ClassYearResult:
        """The class as opened for the scope's academic year."""
        await self._require(scope.require_tenant(), class_id)
        year_id = scope.require_academic_year()
        class_year = await self._enrollment_repo.get_class_year_for_class(class_id, year_id)
        if class_year is None:
            raise NotFoundException(
                "class_year",
                class_id,
                message="Class is not open for the selected academic year",
            )
        return class_year

    async def list_class_years(self, scope: RequestScope) -> list[ClassYearResult]:
        return await self._enrollment_repo.list_class_years_by_academic_year(
            scope.require_tenant(), scope.require_academic_year()
        )

    async def list_class_years_of_class(
        self, scope: RequestScope, class_id: str
    ) -> list[ClassYearResult]:
        await self._require(scope.require_tenant(), class_id)
        return await self._enrollment_repo.list_class_years_by_class(class_id)

    async def update_class_year(
        self, scope: RequestScope, class_year_id: str, changes: dict[str, Any]
    ) -> ClassYearResult:
        await self._require_class_year(scope.require_tenant(), class_year_id)
        max_students = changes.get("max_students")
        if max_students is not None and max_students < 1:
            raise BadRequestException(
                "max_students must be at least 1", field="max_students"
            )
        try:
            updated = await self._enrollment_repo.update_class_year(class_year_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("class_year", class_year_id)
        return updated
