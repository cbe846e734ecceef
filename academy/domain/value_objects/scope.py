"""Request scope value objects: principal, academic-year context, request scope.

Scope is passed explicitly by parameter through every use case and repository
call; there is no ambient per-request state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from academy.domain.enums import UserRole, YearResolution
from academy.domain.exceptions import BadRequestException, ForbiddenException


@dataclass(frozen=True)
class Principal:
    """Authenticated caller. tenant_id is None for users not attached to an academy."""

    user_id: str
    tenant_id: str | None = None
    role: UserRole = UserRole.STAFF


@dataclass(frozen=True)
class AcademicYearContext:
    """Academic year governing a request. Resolved once, immutable afterwards."""

    academic_year_id: str
    is_current: bool
    resolution: YearResolution


@dataclass(frozen=True)
class RequestScope:
    """The (tenant, academic year) pair governing a request."""

    tenant_id: str | None = None
    academic_year: AcademicYearContext | None = None

    @property
    def academic_year_id(self) -> str | None:
        return self.academic_year.academic_year_id if self.academic_year else None

    def with_tenant(self, tenant_id: str | None) -> RequestScope:
        """Attach the resolved tenant. Re-attaching the same tenant is a no-op.

        Raises:
            ForbiddenException: If a different tenant is already attached.
        """
        if tenant_id is None or tenant_id == self.tenant_id:
            return self
        if self.tenant_id is not None:
            raise ForbiddenException(
                "Request scope is already bound to another academy",
                {"tenant_id": self.tenant_id},
            )
        return replace(self, tenant_id=tenant_id)

    def with_academic_year(self, context: AcademicYearContext | None) -> RequestScope:
        """Attach the resolved academic year (same idempotency rule as with_tenant)."""
        if context is None or context == self.academic_year:
            return self
        if self.academic_year is not None:
            raise ForbiddenException(
                "Request scope is already bound to another academic year",
                {"academic_year_id": self.academic_year.academic_year_id},
            )
        return replace(self, academic_year=context)

    def require_tenant(self) -> str:
        """Return the tenant id or raise ForbiddenException."""
        if self.tenant_id is None:
            raise ForbiddenException(
                "This operation requires you to be associated with an academy"
            )
        return self.tenant_id

    def require_academic_year(self) -> str:
        """Return the academic year id or raise BadRequestException."""
        if self.academic_year is None:
            raise BadRequestException(
                "This operation requires an academic year",
                field="academic_year_id",
            )
        return self.academic_year.academic_year_id
