"""Academic-year context resolver: explicit header or the academy's current year."""

from __future__ import annotations

import logging

from academy.application.interfaces.repositories import IAcademicYearRepository
from academy.core.id_validation import is_valid_uuid
from academy.domain.enums import YearResolution
from academy.domain.exceptions import BadRequestException, ForbiddenException
from academy.domain.value_objects.scope import AcademicYearContext

logger = logging.getLogger(__name__)

_FIELD = "academic_year_id"


class AcademicYearContextResolver:
    """Resolve the AcademicYearContext of a request, once."""

    def __init__(
        self,
        academic_year_repo: IAcademicYearRepository,
        *,
        header_name: str = "X-Academic-Year-ID",
    ) -> None:
        self._repo = academic_year_repo
        self._header_name = header_name

    async def resolve(
        self,
        tenant_id: str | None,
        requested_year_id: str | None,
        *,
        required: bool,
    ) -> AcademicYearContext | None:
        """Return the year context, or None when no year was asked for and none is required.

        An explicitly requested year must be a valid UUID (BadRequest), exist
        (BadRequest) and belong to the tenant (Forbidden). Without one, a
        required year falls back to the academy's current year.
        """
        if requested_year_id:
            return await self._resolve_explicit(tenant_id, requested_year_id)
        if not required:
            return None
        return await self._resolve_current(tenant_id)

    async def _resolve_explicit(
        self, tenant_id: str | None, requested_year_id: str
    ) -> AcademicYearContext:
        if not tenant_id:
            raise ForbiddenException(
                "An academic year can only be selected within an academy",
                {_FIELD: requested_year_id},
            )
        if not is_valid_uuid(requested_year_id):
            raise BadRequestException(
                f"Invalid academic year id '{requested_year_id}' in {self._header_name}",
                field=_FIELD,
            )
        year = await self._repo.get_by_id(requested_year_id)
        if year is None:
            raise BadRequestException(
                f"Academic year '{requested_year_id}' does not exist", field=_FIELD
            )
        if year.academy_id != tenant_id:
            logger.warning(
                "Academic year %s requested outside its academy (tenant %s)",
                requested_year_id,
                tenant_id,
            )
            raise ForbiddenException(
                "This academic year does not belong to your academy",
                {_FIELD: requested_year_id},
            )
        return AcademicYearContext(
            academic_year_id=year.id,
            is_current=year.is_current,
            resolution=YearResolution.EXPLICIT,
        )

    async def _resolve_current(self, tenant_id: str | None) -> AcademicYearContext:
        if not tenant_id:
            raise ForbiddenException(
                "This operation requires you to be associated with an academy"
            )
        current = await self._repo.get_current(tenant_id)
        if current is None:
            raise BadRequestException(
                "No current academic year found for your academy. Please provide "
                f"{self._header_name} header or set a current academic year.",
                field=_FIELD,
            )
        return AcademicYearContext(
            academic_year_id=current.id,
            is_current=True,
            resolution=YearResolution.FALLBACK,
        )
