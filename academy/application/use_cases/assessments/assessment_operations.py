"""Trimester and test operations within the academic year of the request scope."""

from __future__ import annotations

from datetime import date
from typing import Any

from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
from academy.application.interfaces.repositories import (
    IAcademicTestRepository,
    INoteRepository,
    ITrimesterRepository,
)
from academy.application.services.ownership import OwnershipChecker
from academy.application.services.test_code_resolver import TestCodeResolver
from academy.domain.enums import TestType
from academy.domain.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from academy.domain.value_objects.codes import TestCode
from academy.domain.value_objects.scope import RequestScope


def _check_percentage(value: float, field: str) -> None:
    if not 0 <= value <= 100:
        raise BadRequestException(f"{field} must be between 0 and 100", field=field)


class AssessmentService:
    """Trimesters of the scope's year and the tests held in them."""

    def __init__(
        self,
        trimester_repo: ITrimesterRepository,
        test_repo: IAcademicTestRepository,
        note_repo: INoteRepository,
        ownership: OwnershipChecker,
    ) -> None:
        self._trimester_repo = trimester_repo
        self._test_repo = test_repo
        self._note_repo = note_repo
        self._ownership = ownership
        self._test_codes = TestCodeResolver(trimester_repo, test_repo)

    async def _trimester_in_scope(
        self, scope: RequestScope, trimester_id: str
    ) -> TrimesterResult:
        """Trimester of the tenant; Forbidden when it belongs to another of its years."""
        trimester = await self._ownership.require_trimester(scope.require_tenant(), trimester_id)
        if trimester.academic_year_id != scope.require_academic_year():
            raise ForbiddenException(
                "Trimester does not belong to the selected academic year",
                {"trimester_id": trimester_id},
            )
        return trimester

    async def create_trimester(
        self,
        scope: RequestScope,
        name: str,
        order: int,
        start_date: date,
        end_date: date,
        percentage: float,
    ) -> TrimesterResult:
        scope.require_tenant()
        year_id = scope.require_academic_year()
        if order < 1:
            raise BadRequestException("Trimester order starts at 1", field="order")
        if start_date >= end_date:
            raise BadRequestException("Start date must be before end date", field="start_date")
        _check_percentage(percentage, "percentage")
        return await self._trimester_repo.create(
            year_id, name, order, start_date, end_date, percentage
        )

    async def list_trimesters(self, scope: RequestScope) -> list[TrimesterResult]:
        scope.require_tenant()
        return await self._trimester_repo.list_by_academic_year(scope.require_academic_year())

    async def update_trimester(
        self, scope: RequestScope, trimester_id: str, changes: dict[str, Any]
    ) -> TrimesterResult:
        trimester = await self._trimester_in_scope(scope, trimester_id)
        start = changes.get("start_date", trimester.start_date)
        end = changes.get("end_date", trimester.end_date)
        if start >= end:
            raise BadRequestException("Start date must be before end date", field="start_date")
        if "percentage" in changes:
            _check_percentage(changes["percentage"], "percentage")
        try:
            updated = await self._trimester_repo.update(trimester_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("trimester", trimester_id)
        return updated

    async def delete_trimester(self, scope: RequestScope, trimester_id: str) -> None:
        """Raises ConflictException while the trimester still has tests."""
        await self._trimester_in_scope(scope, trimester_id)
        if await self._test_repo.list_by_trimester(trimester_id):
            raise ConflictException(
                "Cannot delete a trimester that still has tests",
                details={"trimester_id": trimester_id},
            )
        await self._trimester_repo.delete(trimester_id)

    async def create_test(
        self,
        scope: RequestScope,
        trimester_id: str,
        name: str,
        test_type: TestType,
        held_on: date,
        percentage: float,
        description: str | None = None,
    ) -> AcademicTestResult:
        trimester = await self._trimester_in_scope(scope, trimester_id)
        _check_percentage(percentage, "percentage")
        if not trimester.start_date <= held_on <= trimester.end_date:
            raise BadRequestException(
                "Test date must fall within its trimester", field="date"
            )
        return await self._test_repo.create(
            trimester_id,
            {
                "name": name,
                "type": TestType(test_type),
                "date": held_on,
                "percentage": percentage,
                "description": description,
            },
        )

    async def list_tests(
        self, scope: RequestScope, trimester_id: str
    ) -> list[AcademicTestResult]:
        await self._trimester_in_scope(scope, trimester_id)
        return await self._test_repo.list_by_trimester(trimester_id)

    async def get_test(self, scope: RequestScope, test_id: str) -> AcademicTestResult:
        test, _ = await self._ownership.require_test(scope.require_tenant(), test_id)
        return test

    async def get_test_by_code(self, scope: RequestScope, code: str) -> AcademicTestResult:
        """Resolve Trim{N}-{M} within the scope's academic year."""
        scope.require_tenant()
        return await self._test_codes.resolve(
            scope.require_academic_year(), TestCode.parse(code)
        )

    async def update_test(
        self, scope: RequestScope, test_id: str, changes: dict[str, Any]
    ) -> AcademicTestResult:
        test, trimester = await self._ownership.require_test(scope.require_tenant(), test_id)
        if "trimester_id" in changes:
            trimester = await self._trimester_in_scope(scope, changes["trimester_id"])
        if "trimester_id" in changes or "date" in changes:
            held_on = changes.get("date", test.date)
            if not trimester.start_date <= held_on <= trimester.end_date:
                raise BadRequestException(
                    "Test date must fall within its trimester", field="date"
                )
        if "percentage" in changes:
            _check_percentage(changes["percentage"], "percentage")
        try:
            updated = await self._test_repo.update(test_id, changes)
        except ValueError as e:
            raise BadRequestException(str(e)) from e
        if updated is None:
            raise NotFoundException("test", test_id)
        return updated

    async def delete_test(self, scope: RequestScope, test_id: str) -> None:
        """Raises ConflictException when notes were recorded for the test."""
        await self._ownership.require_test(scope.require_tenant(), test_id)
        count = await self._note_repo.count_by_test(test_id)
        if count:
            raise ConflictException(
                f"Cannot delete a test with {count} recorded notes",
                details={"test_id": test_id, "notes": count},
            )
        await self._test_repo.delete(test_id)
