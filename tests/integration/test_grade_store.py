"""Repositories against PostgreSQL: bulk upsert idempotency, current-year exclusivity,
cache reads and eviction. Requires DATABASE_URL; session is rolled back after each test."""

from datetime import date

import pytest

from academy.api.dependencies import build_repositories
from academy.application.dtos.note import GradeEntry
from academy.application.use_cases.academic_years import AcademicYearService
from academy.application.use_cases.notes import GradeRecordingService
from academy.domain.enums import InscriptionStatus, TestType, YearResolution
from academy.domain.exceptions import ConflictException, ForbiddenException
from academy.domain.value_objects.scope import AcademicYearContext, RequestScope
from academy.infrastructure.cache import keys
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationCoordinator
from academy.infrastructure.persistence.models import Academy

pytestmark = pytest.mark.requires_db


@pytest.fixture
def store(cache):
    return CacheAsideStore(cache)


@pytest.fixture
def repos(db_session, store, settings):
    return build_repositories(db_session, store, InvalidationCoordinator(store), settings)


@pytest.fixture
async def school(db_session, repos):
    """One academy with a current year, a trimester holding two tests, MATH101
    taught in class 6A, and STU001 confirmed in 6A."""
    academy = Academy(name="Test Academy")
    db_session.add(academy)
    await db_session.flush()

    year = await AcademicYearService(repos.academic_years).create_academic_year(
        academy.id, "2025-2026", date(2025, 9, 1), date(2026, 6, 30)
    )
    school_class = await repos.classes.create(academy.id, "6A", "Sixth A", 6)
    class_year_id = await repos.enrollments.open_class_year(academy.id, school_class.id, year.id)
    course = await repos.courses.create(academy.id, "MATH101", "Mathematics", "science")
    await repos.enrollments.assign_course(class_year_id, course.id)
    student = await repos.students.create(academy.id, "STU001", "Ada", "Lovelace")
    await repos.enrollments.enroll(student.id, year.id, class_year_id, InscriptionStatus.CONFIRMED)
    trimester = await repos.trimesters.create(
        year.id, "First", 1, date(2025, 9, 1), date(2025, 12, 20), 30.0
    )
    later = await repos.tests.create(
        trimester.id,
        {"name": "Final", "type": TestType.EXAM, "date": date(2025, 12, 10), "percentage": 60.0},
    )
    earlier = await repos.tests.create(
        trimester.id,
        {"name": "Quiz", "type": TestType.QUIZ, "date": date(2025, 10, 1), "percentage": 40.0},
    )
    scope = RequestScope(
        tenant_id=academy.id,
        academic_year=AcademicYearContext(year.id, True, YearResolution.FALLBACK),
    )
    return {
        "academy": academy,
        "year": year,
        "course": course,
        "student": student,
        "earlier": earlier,
        "later": later,
        "scope": scope,
    }


def _service(repos):
    return GradeRecordingService(
        repos.students,
        repos.courses,
        repos.trimesters,
        repos.tests,
        repos.enrollments,
        repos.notes,
    )


async def test_record_twice_keeps_one_note(repos, school):
    service = _service(repos)
    entry = GradeEntry(
        score=15, registration_number="STU001", test_code="Trim1-1", course_code="MATH101"
    )

    first = await service.record(school["scope"], "u1", [entry])
    second = await service.record(school["scope"], "u1", [entry])

    assert first[0].id == second[0].id
    assert first[0].test_id == school["earlier"].id
    assert await repos.notes.count_by_test(school["earlier"].id) == 1


async def test_upsert_overwrites_score_and_evicts_lookups(repos, school, cache):
    service = _service(repos)
    student_id, test_id = school["student"].id, school["later"].id
    entry = GradeEntry(score=10, student_id=student_id, test_id=test_id, course_code="MATH101")
    await service.record(school["scope"], "u1", [entry])

    cached = await repos.notes.get_by_student_and_test(student_id, test_id)
    assert cached.score == 10
    assert keys.note_student_test_key(student_id, test_id) in cache.data

    await service.record(
        school["scope"], "u2", [GradeEntry(score=18, student_id=student_id, test_id=test_id, course_code="MATH101")]
    )

    assert keys.note_student_test_key(student_id, test_id) not in cache.data
    fresh = await repos.notes.get_by_student_and_test(student_id, test_id)
    assert fresh.score == 18
    assert fresh.entered_by == "u2"


async def test_over_max_batch_writes_nothing(repos, school):
    service = _service(repos)
    with pytest.raises(ForbiddenException):
        await service.record(
            school["scope"],
            "u1",
            [GradeEntry(score=25, registration_number="STU001", test_code="Trim1-1", course_code="MATH101")],
        )
    assert await repos.notes.count_by_test(school["earlier"].id) == 0


async def test_set_current_is_exclusive_and_repopulates(repos, school, cache):
    academy_id = school["academy"].id
    service = AcademicYearService(repos.academic_years)
    next_year = await service.create_academic_year(
        academy_id, "2026-2027", date(2026, 9, 1), date(2027, 6, 30)
    )
    assert (await repos.academic_years.get_current(academy_id)).id == school["year"].id

    await service.set_current_academic_year(academy_id, next_year.id)

    assert cache.data[keys.academic_year_current_key(academy_id)]["id"] == next_year.id
    years = await repos.academic_years.list_by_academy(academy_id)
    assert [y.id for y in years if y.is_current] == [next_year.id]


async def test_duplicate_trimester_order_conflicts(repos, school):
    with pytest.raises(ConflictException):
        await repos.trimesters.create(
            school["year"].id, "Again", 1, date(2026, 1, 5), date(2026, 3, 30), 30.0
        )
