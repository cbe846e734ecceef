"""GradeRecordingService: batch validation, all-or-nothing writes, idempotency."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
from academy.application.dtos.course import CourseResult
from academy.application.dtos.note import (
    CourseGrade,
    GradeEntry,
    NoteResult,
    StudentGrade,
)
from academy.application.dtos.student import StudentResult
from academy.application.use_cases.notes import GradeRecordingService
from academy.domain.enums import TestType, YearResolution
from academy.domain.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from academy.domain.value_objects.scope import AcademicYearContext, RequestScope

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def _scope(year_id: str = "y1") -> RequestScope:
    return RequestScope(
        tenant_id="a1",
        academic_year=AcademicYearContext(year_id, True, YearResolution.FALLBACK),
    )


def _student(student_id: str, number: str, academy_id: str = "a1") -> StudentResult:
    return StudentResult(student_id, academy_id, number, "Ada", "Lovelace")


def _course(course_id: str, code: str, academy_id: str = "a1") -> CourseResult:
    return CourseResult(course_id, academy_id, code, code.title())


def _trimester(trimester_id: str, year_id: str, order: int) -> TrimesterResult:
    return TrimesterResult(
        trimester_id, year_id, f"T{order}", order, date(2025, 9, 1), date(2025, 12, 20), 33.3
    )


def _test(test_id: str, trimester_id: str, day: int) -> AcademicTestResult:
    return AcademicTestResult(
        test_id, trimester_id, f"Exam {test_id}", TestType.EXAM, date(2025, 10, day), 50.0
    )


class FakeNotes:
    """Note store keyed by (student_id, test_id), mimicking the bulk upsert."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], NoteResult] = {}
        self.batches: list[list] = []

    async def bulk_upsert(self, rows):
        self.batches.append(list(rows))
        out = []
        for row in rows:
            pair = (row.student_id, row.test_id)
            existing = self.rows.get(pair)
            note = NoteResult(
                id=existing.id if existing else f"n{len(self.rows) + 1}",
                student_id=row.student_id,
                test_id=row.test_id,
                course_id=row.course_id,
                score=row.score,
                max_score=row.max_score,
                is_absent=row.is_absent,
                comment=row.comment,
                entered_by=row.entered_by,
                entered_at=row.entered_at,
            )
            self.rows[pair] = note
            out.append(note)
        return out

    async def get_by_student_and_test(self, student_id, test_id):
        return self.rows.get((student_id, test_id))

    async def create(self, row):
        [note] = await self.bulk_upsert([row])
        return note


@pytest.fixture
def world():
    """Academy a1, year y1 with two trimesters; y2 belongs to the same academy.

    STU001 and STU002 are enrolled in MATH101; STU002 is not enrolled in PHY101.
    """
    students = {
        "s1": _student("s1", "STU001"),
        "s2": _student("s2", "STU002"),
        "sx": _student("sx", "STU999", academy_id="a2"),
    }
    courses = {
        "c1": _course("c1", "MATH101"),
        "c2": _course("c2", "PHY101"),
        "cx": _course("cx", "MATH101", academy_id="a2"),
    }
    trimesters = {
        "tr1": _trimester("tr1", "y1", 1),
        "tr2": _trimester("tr2", "y1", 2),
        "tr9": _trimester("tr9", "y2", 1),
    }
    tests = {
        "t1": _test("t1", "tr1", 5),
        "t2": _test("t2", "tr1", 20),
        "t3": _test("t3", "tr2", 10),
        "t9": _test("t9", "tr9", 10),
    }
    enrolled = {("s1", "c1"), ("s2", "c1"), ("s1", "c2")}

    student_repo = AsyncMock()
    student_repo.get_by_id = AsyncMock(side_effect=lambda sid: students.get(sid))
    student_repo.get_by_registration_number = AsyncMock(
        side_effect=lambda academy_id, number: next(
            (s for s in students.values()
             if s.academy_id == academy_id and s.registration_number == number),
            None,
        )
    )
    course_repo = AsyncMock()
    course_repo.get_by_id = AsyncMock(side_effect=lambda cid: courses.get(cid))
    course_repo.get_by_code = AsyncMock(
        side_effect=lambda academy_id, code: next(
            (c for c in courses.values() if c.academy_id == academy_id and c.code == code),
            None,
        )
    )
    trimester_repo = AsyncMock()
    trimester_repo.get_by_id = AsyncMock(side_effect=lambda tid: trimesters.get(tid))
    trimester_repo.list_by_academic_year = AsyncMock(
        side_effect=lambda year_id: sorted(
            (t for t in trimesters.values() if t.academic_year_id == year_id),
            key=lambda t: t.order,
        )
    )
    test_repo = AsyncMock()
    test_repo.get_by_id = AsyncMock(side_effect=lambda tid: tests.get(tid))
    test_repo.list_by_trimester = AsyncMock(
        side_effect=lambda trimester_id: sorted(
            (t for t in tests.values() if t.trimester_id == trimester_id),
            key=lambda t: t.date,
        )
    )
    enrollment_repo = AsyncMock()
    enrollment_repo.is_enrolled = AsyncMock(
        side_effect=lambda sid, cid, year_id: year_id == "y1" and (sid, cid) in enrolled
    )
    notes = FakeNotes()
    service = GradeRecordingService(
        student_repo,
        course_repo,
        trimester_repo,
        test_repo,
        enrollment_repo,
        notes,
        clock=lambda: NOW,
    )
    return {
        "service": service,
        "notes": notes,
        "student_repo": student_repo,
        "enrollment_repo": enrollment_repo,
    }


def _entry(number="STU001", code="Trim1-1", course="MATH101", score=15.0, **kwargs):
    return GradeEntry(
        score=score, registration_number=number, test_code=code, course_code=course, **kwargs
    )


async def test_record_resolves_codes_and_writes(world):
    notes = await world["service"].record(_scope(), "u1", [_entry()])

    assert len(notes) == 1
    note = notes[0]
    assert (note.student_id, note.test_id, note.course_id) == ("s1", "t1", "c1")
    assert note.max_score == 20
    assert note.entered_by == "u1"
    assert note.entered_at == NOW


async def test_test_code_uses_date_order_within_trimester_order(world):
    notes = await world["service"].record(
        _scope(), "u1", [_entry(code="Trim1-2"), _entry(code="Trim2-1")]
    )
    assert [n.test_id for n in notes] == ["t2", "t3"]


async def test_score_above_max_rejects_whole_batch(world):
    entries = [_entry(number="STU002", score=12), _entry(score=25)]
    with pytest.raises(ForbiddenException) as exc_info:
        await world["service"].record(_scope(), "u1", entries)
    assert "STU001" in exc_info.value.message
    assert world["notes"].batches == []


async def test_custom_max_score_allows_higher_scores(world):
    notes = await world["service"].record(
        _scope(), "u1", [_entry(score=85, max_score=100)]
    )
    assert notes[0].max_score == 100


@pytest.mark.parametrize(
    ("score", "max_score", "field"),
    [(-1, None, "score"), (5, 0, "max_score"), (5, -10, "max_score")],
)
async def test_malformed_scores_are_bad_requests(world, score, max_score, field):
    with pytest.raises(BadRequestException) as exc_info:
        await world["service"].record(
            _scope(), "u1", [_entry(score=score, max_score=max_score)]
        )
    assert exc_info.value.details["field"] == field
    assert world["notes"].batches == []


async def test_not_enrolled_is_forbidden(world):
    with pytest.raises(ForbiddenException):
        await world["service"].record(
            _scope(), "u1", [_entry(number="STU002", course="PHY101")]
        )
    assert world["notes"].batches == []


@pytest.mark.parametrize(
    ("entry", "resource"),
    [
        (_entry(number="STU404"), "student"),
        (_entry(number="STU999"), "student"),
        (_entry(course="CHEM101"), "course"),
        (_entry(code="Trim3-1"), "test"),
        (_entry(code="Trim1-3"), "test"),
    ],
)
async def test_unresolvable_references_are_not_found(world, entry, resource):
    with pytest.raises(NotFoundException) as exc_info:
        await world["service"].record(_scope(), "u1", [entry])
    assert exc_info.value.details["resource_type"] == resource
    assert world["notes"].batches == []


async def test_foreign_ids_are_not_found(world):
    with pytest.raises(NotFoundException):
        await world["service"].record(
            _scope(), "u1", [GradeEntry(score=10, student_id="sx", test_id="t1", course_id="c1")]
        )
    with pytest.raises(NotFoundException):
        await world["service"].record(
            _scope(), "u1", [GradeEntry(score=10, student_id="s1", test_id="t1", course_id="cx")]
        )


async def test_malformed_test_code_is_bad_request(world):
    with pytest.raises(BadRequestException):
        await world["service"].record(_scope(), "u1", [_entry(code="Trimester1")])


async def test_missing_reference_is_bad_request(world):
    with pytest.raises(BadRequestException) as exc_info:
        await world["service"].record(
            _scope(), "u1", [GradeEntry(score=10, test_code="Trim1-1", course_code="MATH101")]
        )
    assert exc_info.value.details["field"] == "student"


async def test_test_id_from_other_year_is_forbidden(world):
    with pytest.raises(ForbiddenException):
        await world["service"].record(
            _scope(), "u1", [GradeEntry(score=10, student_id="s1", test_id="t9", course_id="c1")]
        )


async def test_resubmitting_same_batch_is_idempotent(world):
    batch = [_entry(), _entry(number="STU002", score=9)]
    first = await world["service"].record(_scope(), "u1", batch)
    second = await world["service"].record(_scope(), "u1", batch)

    assert len(world["notes"].rows) == 2
    assert [n.id for n in first] == [n.id for n in second]
    assert first == second


async def test_duplicate_pairs_collapse_to_last_entry(world):
    notes = await world["service"].record(
        _scope(), "u1", [_entry(score=10), _entry(number="STU002"), _entry(score=18)]
    )
    batch = world["notes"].batches[0]
    assert len(batch) == 2
    assert [(r.student_id, r.score) for r in batch] == [("s2", 15.0), ("s1", 18)]
    assert len(notes) == 2


async def test_lookups_are_memoized_per_batch(world):
    await world["service"].record(
        _scope(), "u1", [_entry(code="Trim1-1"), _entry(code="Trim1-2")]
    )
    assert world["student_repo"].get_by_registration_number.await_count == 1
    assert world["enrollment_repo"].is_enrolled.await_count == 1


async def test_empty_batch_writes_nothing(world):
    assert await world["service"].record(_scope(), "u1", []) == []
    assert world["notes"].batches == []


async def test_record_requires_academic_year(world):
    with pytest.raises(BadRequestException):
        await world["service"].record(RequestScope(tenant_id="a1"), "u1", [_entry()])


async def test_record_for_test_and_course(world):
    notes = await world["service"].record_for_test_and_course(
        _scope(),
        "u1",
        [StudentGrade(score=14, registration_number="STU001"), StudentGrade(score=0, student_id="s2", is_absent=True)],
        test_code="Trim1-1",
        course_code="MATH101",
    )
    assert [(n.student_id, n.is_absent) for n in notes] == [("s1", False), ("s2", True)]


async def test_record_for_student(world):
    notes = await world["service"].record_for_student(
        _scope(),
        "u1",
        "s1",
        [
            CourseGrade(score=12, test_code="Trim1-1", course_code="MATH101"),
            CourseGrade(score=16, test_id="t3", course_id="c2", comment="good"),
        ],
    )
    assert [(n.test_id, n.course_id) for n in notes] == [("t1", "c1"), ("t3", "c2")]
    assert notes[1].comment == "good"


async def test_create_note_writes_single_note(world):
    note = await world["service"].create_note(_scope(), "u1", _entry(score=11))

    assert (note.student_id, note.test_id, note.score) == ("s1", "t1", 11)
    assert note.entered_by == "u1"


async def test_create_note_does_not_overwrite(world):
    await world["service"].create_note(_scope(), "u1", _entry(score=11))

    with pytest.raises(ConflictException):
        await world["service"].create_note(_scope(), "u2", _entry(score=18))
    assert world["notes"].rows[("s1", "t1")].score == 11


async def test_create_note_checks_enrollment_and_score(world):
    with pytest.raises(ForbiddenException):
        await world["service"].create_note(
            _scope(), "u1", _entry(number="STU002", course="PHY101")
        )
    with pytest.raises(ForbiddenException):
        await world["service"].create_note(_scope(), "u1", _entry(score=21))
    assert world["notes"].rows == {}


async def test_course_code_with_key_metacharacters_is_not_found(world):
    with pytest.raises(NotFoundException) as exc_info:
        await world["service"].record(_scope(), "u1", [_entry(course="MATH[101]")])
    assert exc_info.value.details["resource_type"] == "course"
