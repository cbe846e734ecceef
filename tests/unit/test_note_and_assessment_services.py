"""Note queries/maintenance and trimester/test operations with mocked repos."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from academy.application.dtos.academic_year import AcademicYearResult
from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
from academy.application.dtos.course import CourseResult
from academy.application.dtos.note import NoteResult
from academy.application.dtos.student import StudentResult
from academy.application.services import OwnershipChecker, TestCodeResolver
from academy.application.use_cases.assessments import AssessmentService
from academy.application.use_cases.notes import NoteMaintenanceService, NoteQueryService
from academy.domain.enums import TestType, YearResolution
from academy.domain.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from academy.domain.value_objects.codes import TestCode
from academy.domain.value_objects.scope import AcademicYearContext, RequestScope

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def _scope(tenant_id: str = "a1", year_id: str = "y1") -> RequestScope:
    return RequestScope(
        tenant_id=tenant_id,
        academic_year=AcademicYearContext(year_id, True, YearResolution.EXPLICIT),
    )


def _note(**overrides) -> NoteResult:
    values = dict(
        id="n1",
        student_id="s1",
        test_id="t1",
        course_id="c1",
        score=12.0,
        max_score=20.0,
        is_absent=False,
        comment=None,
        entered_by="u0",
        entered_at=None,
    )
    values.update(overrides)
    return NoteResult(**values)


@pytest.fixture
def repos():
    """a1 owns y1, y2, s1, c1, tr1 (y1), tr2 (y2) and t1 (tr1); a2 owns s2."""
    years = {
        "y1": AcademicYearResult("y1", "a1", "Y1", date(2025, 9, 1), date(2026, 6, 30), True),
        "y2": AcademicYearResult("y2", "a1", "Y2", date(2026, 9, 1), date(2027, 6, 30), False),
    }
    students = {
        "s1": StudentResult("s1", "a1", "STU001", "Ada", "Lovelace"),
        "s2": StudentResult("s2", "a2", "STU002", "Alan", "Turing"),
    }
    courses = {"c1": CourseResult("c1", "a1", "MATH101", "Mathematics")}
    trimesters = {
        "tr1": TrimesterResult("tr1", "y1", "T1", 1, date(2025, 9, 1), date(2025, 12, 20), 30.0),
        "tr2": TrimesterResult("tr2", "y2", "T1", 1, date(2026, 9, 1), date(2026, 12, 20), 30.0),
    }
    tests = {
        "t1": AcademicTestResult("t1", "tr1", "Midterm", TestType.EXAM, date(2025, 10, 15), 40.0)
    }

    def lookup(table):
        return AsyncMock(side_effect=lambda key: table.get(key))

    year_repo, student_repo, course_repo = AsyncMock(), AsyncMock(), AsyncMock()
    trimester_repo, test_repo, note_repo = AsyncMock(), AsyncMock(), AsyncMock()
    year_repo.get_by_id = lookup(years)
    student_repo.get_by_id = lookup(students)
    course_repo.get_by_id = lookup(courses)
    trimester_repo.get_by_id = lookup(trimesters)
    trimester_repo.list_by_academic_year = AsyncMock(
        side_effect=lambda year_id: [t for t in trimesters.values() if t.academic_year_id == year_id]
    )
    test_repo.get_by_id = lookup(tests)
    test_repo.list_by_trimester = AsyncMock(
        side_effect=lambda trimester_id: [t for t in tests.values() if t.trimester_id == trimester_id]
    )
    ownership = OwnershipChecker(year_repo, student_repo, course_repo, trimester_repo, test_repo)
    return {
        "ownership": ownership,
        "trimester_repo": trimester_repo,
        "test_repo": test_repo,
        "note_repo": note_repo,
    }


@pytest.fixture
def queries(repos):
    return NoteQueryService(repos["note_repo"], repos["ownership"])


@pytest.fixture
def maintenance(repos):
    return NoteMaintenanceService(repos["note_repo"], repos["ownership"], clock=lambda: NOW)


@pytest.fixture
def assessments(repos):
    return AssessmentService(
        repos["trimester_repo"], repos["test_repo"], repos["note_repo"], repos["ownership"]
    )


async def test_list_by_student_checks_ownership(queries, repos):
    repos["note_repo"].list_by_student = AsyncMock(return_value=[_note()])
    assert await queries.list_by_student(_scope(), "s1") == [_note()]
    with pytest.raises(NotFoundException):
        await queries.list_by_student(_scope(), "s2")
    repos["note_repo"].list_by_student.assert_awaited_once_with("s1")


async def test_list_by_test_of_other_academy_is_not_found(queries, repos):
    with pytest.raises(NotFoundException):
        await queries.list_by_test(_scope(tenant_id="a2"), "t1")
    repos["note_repo"].list_by_test.assert_not_called()


async def test_pair_queries(queries, repos):
    repos["note_repo"].list_by_student_and_course = AsyncMock(return_value=[_note()])
    repos["note_repo"].list_by_test_and_course = AsyncMock(return_value=[])
    assert await queries.list_by_student_and_course(_scope(), "s1", "c1") == [_note()]
    assert await queries.list_by_test_and_course(_scope(), "t1", "c1") == []
    with pytest.raises(NotFoundException):
        await queries.list_by_test_and_course(_scope(), "t1", "c404")


async def test_get_by_student_and_test(queries, repos):
    repos["note_repo"].get_by_student_and_test = AsyncMock(side_effect=[_note(), None])
    assert (await queries.get_by_student_and_test(_scope(), "s1", "t1")).id == "n1"
    with pytest.raises(NotFoundException):
        await queries.get_by_student_and_test(_scope(), "s1", "t1")


async def test_update_note_applies_policy_and_stamps(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note())
    repos["note_repo"].update = AsyncMock(return_value=_note(score=18.0, entered_by="u1"))

    updated = await maintenance.update_note(_scope(), "u1", "n1", score=18.0)

    assert updated.score == 18.0
    repos["note_repo"].update.assert_awaited_once_with(
        "n1", {"score": 18.0, "entered_by": "u1", "entered_at": NOW}
    )


async def test_update_note_over_existing_max_is_forbidden(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note())
    with pytest.raises(ForbiddenException):
        await maintenance.update_note(_scope(), "u1", "n1", score=21.0)
    repos["note_repo"].update.assert_not_called()


async def test_update_note_lowering_max_below_score(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note(score=15.0))
    with pytest.raises(ForbiddenException):
        await maintenance.update_note(_scope(), "u1", "n1", max_score=10.0)


async def test_update_note_without_changes_returns_note(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note())
    assert await maintenance.update_note(_scope(), "u1", "n1") == _note()
    repos["note_repo"].update.assert_not_called()


async def test_note_of_other_academy_is_not_found(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note(student_id="s2"))
    with pytest.raises(NotFoundException) as exc_info:
        await maintenance.delete_note(_scope(), "n1")
    assert exc_info.value.details["resource_type"] == "note"
    repos["note_repo"].delete.assert_not_called()


async def test_delete_note(maintenance, repos):
    repos["note_repo"].get_by_id = AsyncMock(return_value=_note())
    repos["note_repo"].delete = AsyncMock(return_value=_note())
    assert (await maintenance.delete_note(_scope(), "n1")).id == "n1"


async def test_create_trimester_validation(assessments, repos):
    with pytest.raises(BadRequestException):
        await assessments.create_trimester(
            _scope(), "T1", 0, date(2025, 9, 1), date(2025, 12, 1), 30
        )
    with pytest.raises(BadRequestException):
        await assessments.create_trimester(
            _scope(), "T1", 1, date(2025, 12, 1), date(2025, 9, 1), 30
        )
    with pytest.raises(BadRequestException):
        await assessments.create_trimester(
            _scope(), "T1", 1, date(2025, 9, 1), date(2025, 12, 1), 130
        )
    repos["trimester_repo"].create.assert_not_called()


async def test_create_trimester_in_scope_year(assessments, repos):
    await assessments.create_trimester(
        _scope(), "T2", 2, date(2026, 1, 5), date(2026, 3, 30), 35
    )
    repos["trimester_repo"].create.assert_awaited_once_with(
        "y1", "T2", 2, date(2026, 1, 5), date(2026, 3, 30), 35
    )


async def test_trimester_of_another_year_is_forbidden(assessments):
    with pytest.raises(ForbiddenException):
        await assessments.list_tests(_scope(), "tr2")


async def test_delete_trimester_with_tests_conflicts(assessments, repos):
    with pytest.raises(ConflictException):
        await assessments.delete_trimester(_scope(), "tr1")
    repos["trimester_repo"].delete.assert_not_called()


async def test_create_test_date_must_fall_in_trimester(assessments, repos):
    with pytest.raises(BadRequestException) as exc_info:
        await assessments.create_test(
            _scope(), "tr1", "Final", TestType.EXAM, date(2026, 1, 10), 60
        )
    assert exc_info.value.details["field"] == "date"
    await assessments.create_test(_scope(), "tr1", "Quiz", "quiz", date(2025, 11, 3), 10)
    _, data = repos["test_repo"].create.await_args.args
    assert data["type"] is TestType.QUIZ


async def test_get_test_by_code(assessments):
    assert (await assessments.get_test_by_code(_scope(), "Trim1-1")).id == "t1"
    with pytest.raises(NotFoundException):
        await assessments.get_test_by_code(_scope(), "Trim1-2")
    with pytest.raises(BadRequestException):
        await assessments.get_test_by_code(_scope(), "first")


async def test_delete_test_with_notes_conflicts(assessments, repos):
    repos["note_repo"].count_by_test = AsyncMock(return_value=3)
    with pytest.raises(ConflictException) as exc_info:
        await assessments.delete_test(_scope(), "t1")
    assert exc_info.value.details["notes"] == 3
    repos["note_repo"].count_by_test = AsyncMock(return_value=0)
    await assessments.delete_test(_scope(), "t1")
    repos["test_repo"].delete.assert_awaited_once_with("t1")


async def test_update_test_rejects_unknown_field(assessments, repos):
    repos["test_repo"].update = AsyncMock(side_effect=ValueError("Fields not updatable: id"))
    with pytest.raises(BadRequestException):
        await assessments.update_test(_scope(), "t1", {"id": "x"})


async def test_update_test_date_must_stay_in_trimester(assessments, repos):
    with pytest.raises(BadRequestException) as exc_info:
        await assessments.update_test(_scope(), "t1", {"date": date(2026, 2, 1)})
    assert exc_info.value.details["field"] == "date"
    repos["test_repo"].update.assert_not_called()

    await assessments.update_test(_scope(), "t1", {"date": date(2025, 12, 1)})
    repos["test_repo"].update.assert_awaited_once_with("t1", {"date": date(2025, 12, 1)})


async def test_moving_test_checks_its_date_against_the_new_trimester(assessments, repos):
    later = TrimesterResult("tr3", "y1", "T2", 2, date(2026, 1, 5), date(2026, 3, 30), 35.0)
    lookup = repos["trimester_repo"].get_by_id.side_effect
    repos["trimester_repo"].get_by_id = AsyncMock(
        side_effect=lambda tid: later if tid == "tr3" else lookup(tid)
    )

    with pytest.raises(BadRequestException):
        await assessments.update_test(_scope(), "t1", {"trimester_id": "tr3"})

    await assessments.update_test(
        _scope(), "t1", {"trimester_id": "tr3", "date": date(2026, 2, 10)}
    )
    repos["test_repo"].update.assert_awaited_once()


@pytest.mark.parametrize("code", ["Trim2-1", "Trim1-2"])
async def test_test_code_resolver_out_of_range(repos, code):
    resolver = TestCodeResolver(repos["trimester_repo"], repos["test_repo"])
    assert (await resolver.resolve("y1", TestCode.parse("Trim1-1"))).id == "t1"
    with pytest.raises(NotFoundException) as exc_info:
        await resolver.resolve("y1", TestCode.parse(code))
    assert exc_info.value.details == {"resource_type": "test", "identifier": code}
