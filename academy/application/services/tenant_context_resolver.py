"""Tenant context resolver: which academy a request acts for."""

from __future__ import annotations

from academy.domain.exceptions import AuthenticationException, ForbiddenException
from academy.domain.value_objects.scope import Principal

_MSG_NO_ACADEMY = (
    "This resource requires you to be associated with an academy. "
    "Please create or join an academy first."
)


class TenantContextResolver:
    """Derive the tenant from the authenticated principal."""

    def resolve(
        self, principal: Principal | None, *, tenant_required: bool
    ) -> str | None:
        """Return the principal's tenant id.

        Raises AuthenticationException when a tenant is required and there is no
        principal, ForbiddenException when the principal has no academy. When
        the tenant is optional this never raises.
        """
        if not tenant_required:
            return principal.tenant_id if principal else None
        if principal is None:
            raise AuthenticationException()
        if not principal.tenant_id:
            raise ForbiddenException(_MSG_NO_ACADEMY, {"user_id": principal.user_id})
        return principal.tenant_id
