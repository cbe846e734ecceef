"""Application services: request scope resolution, ownership checks, test codes."""

from academy.application.services.academic_year_resolver import (
    AcademicYearContextResolver,
)
from academy.application.services.ownership import OwnershipChecker
from academy.application.services.request_scope_resolver import RequestScopeResolver
from academy.application.services.tenant_context_resolver import TenantContextResolver
from academy.application.services.test_code_resolver import TestCodeResolver

__all__ = [
    "AcademicYearContextResolver",
    "OwnershipChecker",
    "RequestScopeResolver",
    "TenantContextResolver",
    "TestCodeResolver",
]
