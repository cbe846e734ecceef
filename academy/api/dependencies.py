"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the principal, the cache, the request scope
and the application services. Services are built from infrastructure
implementations here; routes depend only on these dependencies.

Read dependencies use get_db. Write dependencies use get_db_transactional and
wire repositories to a PostCommitInvalidator, so cache entries are evicted
only after the transaction commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.services.academic_year_resolver import (
    AcademicYearContextResolver,
)
from academy.application.services.ownership import OwnershipChecker
from academy.application.services.request_scope_resolver import RequestScopeResolver
from academy.application.services.tenant_context_resolver import TenantContextResolver
from academy.application.use_cases.academic_years import AcademicYearService
from academy.application.use_cases.assessments import AssessmentService
from academy.application.use_cases.catalog import (
    CourseService,
    SchoolClassService,
    StudentService,
)
from academy.application.use_cases.notes import (
    GradeRecordingService,
    NoteMaintenanceService,
    NoteQueryService,
)
from academy.core.config import Settings, get_settings
from academy.domain.exceptions import AuthenticationException
from academy.domain.value_objects.scope import Principal, RequestScope
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.cache_protocol import CacheProtocol
from academy.infrastructure.cache.invalidation import (
    InvalidationCoordinator,
    InvalidationSink,
)
from academy.infrastructure.cache.pattern_invalidators import build_pattern_invalidator
from academy.infrastructure.persistence.database import get_db, get_db_transactional
from academy.infrastructure.persistence.post_commit import PostCommitInvalidator
from academy.infrastructure.persistence.repositories import (
    AcademicTestRepository,
    AcademicYearRepository,
    CourseRepository,
    EnrollmentRepository,
    NoteRepository,
    SchoolClassRepository,
    StudentRepository,
    TrimesterRepository,
)
from academy.infrastructure.security.jwt import principal_from_payload, verify_token

_http_bearer = HTTPBearer(auto_error=False)


# ---- Principal ---------------------------------------------------------------


async def get_current_principal_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> Principal | None:
    """Return the principal from the bearer JWT if present and valid; else None."""
    if not credentials:
        return None
    try:
        return principal_from_payload(verify_token(credentials.credentials))
    except (ValueError, KeyError):
        return None


async def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_current_principal_optional)],
) -> Principal:
    """Return the principal; raise AuthenticationException (401) when missing or invalid."""
    if principal is None:
        raise AuthenticationException()
    return principal


# ---- Cache -------------------------------------------------------------------


def get_cache(request: Request) -> CacheProtocol | None:
    """Cache service connected at startup (None when Redis is disabled)."""
    return getattr(request.app.state, "cache", None)


def get_cache_store(
    cache: Annotated[CacheProtocol | None, Depends(get_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CacheAsideStore:
    return CacheAsideStore(
        cache,
        default_ttl=settings.cache_ttl_default,
        pattern_invalidator=(
            build_pattern_invalidator(cache, settings) if cache is not None else None
        ),
    )


def get_invalidation_sink(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    store: Annotated[CacheAsideStore, Depends(get_cache_store)],
) -> InvalidationSink:
    """Sink that defers invalidation until the write transaction commits."""
    return PostCommitInvalidator(db, InvalidationCoordinator(store))


# ---- Repositories ------------------------------------------------------------


@dataclass(frozen=True)
class Repositories:
    """All repositories bound to one session, store and sink."""

    academic_years: AcademicYearRepository
    classes: SchoolClassRepository
    courses: CourseRepository
    students: StudentRepository
    enrollments: EnrollmentRepository
    trimesters: TrimesterRepository
    tests: AcademicTestRepository
    notes: NoteRepository

    def ownership(self) -> OwnershipChecker:
        return OwnershipChecker(
            self.academic_years, self.students, self.courses, self.trimesters, self.tests
        )


def build_repositories(
    db: AsyncSession,
    store: CacheAsideStore,
    sink: InvalidationSink | None,
    settings: Settings,
) -> Repositories:
    return Repositories(
        academic_years=AcademicYearRepository(
            db, store, sink, cache_ttl=settings.cache_ttl_academic_years
        ),
        classes=SchoolClassRepository(db, store, sink),
        courses=CourseRepository(db, store, sink),
        students=StudentRepository(db, store, sink),
        enrollments=EnrollmentRepository(db, store, sink),
        trimesters=TrimesterRepository(db, store, sink),
        tests=AcademicTestRepository(db, store, sink),
        notes=NoteRepository(db, store, sink),
    )


def get_read_repositories(
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[CacheAsideStore, Depends(get_cache_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Repositories:
    return build_repositories(db, store, None, settings)


def get_write_repositories(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    store: Annotated[CacheAsideStore, Depends(get_cache_store)],
    sink: Annotated[InvalidationSink, Depends(get_invalidation_sink)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Repositories:
    return build_repositories(db, store, sink, settings)


ReadRepos = Annotated[Repositories, Depends(get_read_repositories)]
WriteRepos = Annotated[Repositories, Depends(get_write_repositories)]


# ---- Request scope -----------------------------------------------------------


def get_request_scope_resolver(
    repos: ReadRepos,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestScopeResolver:
    return RequestScopeResolver(
        TenantContextResolver(),
        AcademicYearContextResolver(
            repos.academic_years, header_name=settings.academic_year_header_name
        ),
    )


def require_scope(*, tenant_required: bool = True, year_required: bool = False):
    """Dependency factory: resolve the RequestScope (tenant, then academic year).

    The academic year comes from the configured header
    (X-Academic-Year-ID by default) or, when required and absent, from the
    academy's current year.
    """

    async def _require(
        request: Request,
        principal: Annotated[Principal | None, Depends(get_current_principal_optional)],
        resolver: Annotated[RequestScopeResolver, Depends(get_request_scope_resolver)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> RequestScope:
        requested = request.headers.get(settings.academic_year_header_name)
        return await resolver.resolve(
            principal,
            requested.strip() if requested else None,
            tenant_required=tenant_required,
            year_required=year_required,
        )

    return _require


# ---- Use cases ---------------------------------------------------------------


def get_academic_year_service(repos: WriteRepos) -> AcademicYearService:
    return AcademicYearService(repos.academic_years)


def get_grade_recording_service(
    repos: WriteRepos,
    settings: Annotated[Settings, Depends(get_settings)],
) -> GradeRecordingService:
    return GradeRecordingService(
        repos.students,
        repos.courses,
        repos.trimesters,
        repos.tests,
        repos.enrollments,
        repos.notes,
        default_max_score=settings.default_max_score,
    )


def get_note_query_service(repos: ReadRepos) -> NoteQueryService:
    return NoteQueryService(repos.notes, repos.ownership())


def get_note_maintenance_service(repos: WriteRepos) -> NoteMaintenanceService:
    return NoteMaintenanceService(repos.notes, repos.ownership())


def get_assessment_service(repos: WriteRepos) -> AssessmentService:
    return AssessmentService(repos.trimesters, repos.tests, repos.notes, repos.ownership())


def get_school_class_service(repos: WriteRepos) -> SchoolClassService:
    return SchoolClassService(repos.classes, repos.enrollments)


def get_course_service(repos: WriteRepos) -> CourseService:
    return CourseService(repos.courses, repos.enrollments, repos.classes)


def get_student_service(repos: WriteRepos) -> StudentService:
    return StudentService(repos.students, repos.enrollments)
