"""Academic year operations: create (with overlap check), get, list, current."""

from __future__ import annotations

import logging
from datetime import date

from academy.application.dtos.academic_year import AcademicYearResult
from academy.application.interfaces.repositories import IAcademicYearRepository
from academy.domain.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
)

logger = logging.getLogger(__name__)


class AcademicYearService:
    """Academic years of one academy. The first year created becomes current."""

    def __init__(self, academic_year_repo: IAcademicYearRepository) -> None:
        self._repo = academic_year_repo

    async def create_academic_year(
        self, tenant_id: str, name: str, start_date: date, end_date: date
    ) -> AcademicYearResult:
        """Create a year.

        Raises BadRequestException when start_date is not before end_date and
        ConflictException when the dates overlap another year of the academy
        (bounds inclusive: a year ending on the day the next one starts overlaps).
        """
        if start_date >= end_date:
            raise BadRequestException(
                "Start date must be before end date", field="start_date"
            )
        existing = await self._repo.list_by_academy(tenant_id)
        for year in existing:
            if year.overlaps(start_date, end_date):
                raise ConflictException(
                    f"Academic year dates overlap with existing year '{year.name}'",
                    details={"academic_year_id": year.id},
                )
        created = await self._repo.create(
            tenant_id, name, start_date, end_date, is_current=not existing
        )
        logger.info(
            "Academic year %s created for academy %s (current=%s)",
            created.id,
            tenant_id,
            created.is_current,
        )
        return created

    async def list_academic_years(self, tenant_id: str) -> list[AcademicYearResult]:
        """Years of the academy, newest first."""
        return await self._repo.list_by_academy(tenant_id)

    async def get_academic_year(
        self, tenant_id: str, academic_year_id: str
    ) -> AcademicYearResult:
        """Raises NotFoundException when absent or owned by another academy."""
        year = await self._repo.get_by_id(academic_year_id)
        if year is None or year.academy_id != tenant_id:
            raise NotFoundException("academic_year", academic_year_id)
        return year

    async def get_current_academic_year(self, tenant_id: str) -> AcademicYearResult:
        year = await self._repo.get_current(tenant_id)
        if year is None:
            raise NotFoundException(
                "academic_year",
                "current",
                message="No current academic year found for your academy",
            )
        return year

    async def set_current_academic_year(
        self, tenant_id: str, academic_year_id: str
    ) -> AcademicYearResult:
        """Make the year current; every other year of the academy stops being current."""
        year = await self._repo.set_current(tenant_id, academic_year_id)
        if year is None:
            raise NotFoundException("academic_year", academic_year_id)
        logger.info("Academic year %s is now current for academy %s", year.id, tenant_id)
        return year
