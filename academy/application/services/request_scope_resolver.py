"""Compose tenant and academic-year resolution into a RequestScope."""

from __future__ import annotations

from academy.application.services.academic_year_resolver import (
    AcademicYearContextResolver,
)
from academy.application.services.tenant_context_resolver import TenantContextResolver
from academy.domain.value_objects.scope import Principal, RequestScope


class RequestScopeResolver:
    """Run both resolvers in order; any failure aborts before business logic."""

    def __init__(
        self,
        tenant_resolver: TenantContextResolver,
        year_resolver: AcademicYearContextResolver,
    ) -> None:
        self._tenant_resolver = tenant_resolver
        self._year_resolver = year_resolver

    async def resolve(
        self,
        principal: Principal | None,
        requested_year_id: str | None,
        *,
        tenant_required: bool,
        year_required: bool,
    ) -> RequestScope:
        tenant_id = self._tenant_resolver.resolve(
            principal, tenant_required=tenant_required or year_required
        )
        year = await self._year_resolver.resolve(
            tenant_id, requested_year_id, required=year_required
        )
        return RequestScope().with_tenant(tenant_id).with_academic_year(year)
