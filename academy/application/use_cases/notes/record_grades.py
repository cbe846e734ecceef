"""Grade recording: validate a whole batch of scores, then upsert it in one statement.

Every entry is resolved (codes to ids), checked for enrollment and score
bounds before anything is written. The first invalid entry aborts the batch;
a valid batch is written with a single bulk upsert keyed by
(student_id, test_id), so submitting the same batch twice leaves the store
unchanged. Cache invalidation of the affected notes happens in the note
repository after commit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from academy.application.dtos.assessment import AcademicTestResult
from academy.application.dtos.course import CourseResult
from academy.application.dtos.note import (
    CourseGrade,
    GradeEntry,
    NoteResult,
    NoteUpsert,
    StudentGrade,
)
from academy.application.dtos.student import StudentResult
from academy.application.interfaces.repositories import (
    IAcademicTestRepository,
    ICourseRepository,
    IEnrollmentRepository,
    INoteRepository,
    IStudentRepository,
    ITrimesterRepository,
)
from academy.application.services.test_code_resolver import TestCodeResolver
from academy.application.use_cases.notes.score_policy import check_score
from academy.core.constants import DEFAULT_MAX_SCORE
from academy.domain.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from academy.domain.value_objects.codes import TestCode
from academy.domain.value_objects.scope import RequestScope
from academy.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class _BatchLookups:
    """Per-batch memo of reference resolution (one lookup per distinct code or id)."""

    def __init__(self, service: GradeRecordingService, tenant_id: str, year_id: str) -> None:
        self._service = service
        self.tenant_id = tenant_id
        self.year_id = year_id
        self._students: dict[tuple[str, str], StudentResult] = {}
        self._courses: dict[tuple[str, str], CourseResult] = {}
        self._tests: dict[tuple[str, str], AcademicTestResult] = {}
        self._enrolled: dict[tuple[str, str], bool] = {}

    async def student(self, entry: GradeEntry) -> StudentResult:
        if entry.student_id:
            ref = ("id", entry.student_id)
        elif entry.registration_number:
            ref = ("registration_number", entry.registration_number)
        else:
            raise BadRequestException(
                "Each grade needs a student_id or a registration_number", field="student"
            )
        if ref not in self._students:
            self._students[ref] = await self._service._resolve_student(self.tenant_id, *ref)
        return self._students[ref]

    async def course(self, entry: GradeEntry) -> CourseResult:
        if entry.course_id:
            ref = ("id", entry.course_id)
        elif entry.course_code:
            ref = ("code", entry.course_code)
        else:
            raise BadRequestException(
                "Each grade needs a course_id or a course_code", field="course"
            )
        if ref not in self._courses:
            self._courses[ref] = await self._service._resolve_course(self.tenant_id, *ref)
        return self._courses[ref]

    async def test(self, entry: GradeEntry) -> AcademicTestResult:
        if entry.test_id:
            ref = ("id", entry.test_id)
        elif entry.test_code:
            ref = ("code", entry.test_code)
        else:
            raise BadRequestException(
                "Each grade needs a test_id or a test_code", field="test"
            )
        if ref not in self._tests:
            self._tests[ref] = await self._service._resolve_test(self.year_id, *ref)
        return self._tests[ref]

    async def is_enrolled(self, student_id: str, course_id: str) -> bool:
        pair = (student_id, course_id)
        if pair not in self._enrolled:
            self._enrolled[pair] = await self._service._enrollment_repo.is_enrolled(
                student_id, course_id, self.year_id
            )
        return self._enrolled[pair]


class GradeRecordingService:
    """Record grades (notes) for the academic year of the request scope."""

    def __init__(
        self,
        student_repo: IStudentRepository,
        course_repo: ICourseRepository,
        trimester_repo: ITrimesterRepository,
        test_repo: IAcademicTestRepository,
        enrollment_repo: IEnrollmentRepository,
        note_repo: INoteRepository,
        *,
        default_max_score: float = DEFAULT_MAX_SCORE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._student_repo = student_repo
        self._course_repo = course_repo
        self._trimester_repo = trimester_repo
        self._test_repo = test_repo
        self._enrollment_repo = enrollment_repo
        self._note_repo = note_repo
        self._default_max_score = default_max_score
        self._clock = clock
        self._test_codes = TestCodeResolver(trimester_repo, test_repo)

    async def record(
        self, scope: RequestScope, user_id: str, entries: Sequence[GradeEntry]
    ) -> list[NoteResult]:
        """Validate every entry, then create or overwrite one note per (student, test).

        All-or-nothing: the first invalid entry raises and nothing is written.
        Entries repeating a (student, test) pair collapse to the last one.

        Raises:
            BadRequestException: Missing reference, malformed test code, negative score.
            NotFoundException: A student, course or test does not resolve.
            ForbiddenException: Student not enrolled in the course for the year,
                test outside the year, or score above the maximum.
        """
        tenant_id = scope.require_tenant()
        year_id = scope.require_academic_year()
        if not entries:
            return []
        lookups = _BatchLookups(self, tenant_id, year_id)
        entered_at = self._clock()
        rows: dict[tuple[str, str], NoteUpsert] = {}
        for entry in entries:
            row = await self._validate(lookups, entry, user_id, entered_at)
            rows.pop((row.student_id, row.test_id), None)
            rows[(row.student_id, row.test_id)] = row
        notes = await self._note_repo.bulk_upsert(list(rows.values()))
        logger.info(
            "Recorded %s notes (%s submitted) for academy %s, year %s by %s",
            len(notes),
            len(entries),
            tenant_id,
            year_id,
            user_id,
        )
        return notes

    async def create_note(
        self, scope: RequestScope, user_id: str, entry: GradeEntry
    ) -> NoteResult:
        """Create one note. Unlike record(), an existing note for the same
        (student, test) is not overwritten.

        Raises:
            ConflictException: The student already has a note for the test.
            BadRequestException, NotFoundException, ForbiddenException: As record().
        """
        tenant_id = scope.require_tenant()
        lookups = _BatchLookups(self, tenant_id, scope.require_academic_year())
        row = await self._validate(lookups, entry, user_id, self._clock())
        if await self._note_repo.get_by_student_and_test(row.student_id, row.test_id):
            raise ConflictException(
                "Note already exists for this student and test",
                details={"student_id": row.student_id, "test_id": row.test_id},
            )
        note = await self._note_repo.create(row)
        logger.info(
            "Created note %s for student %s on test %s by %s",
            note.id,
            row.student_id,
            row.test_id,
            user_id,
        )
        return note

    async def record_for_test_and_course(
        self,
        scope: RequestScope,
        user_id: str,
        grades: Sequence[StudentGrade],
        *,
        test_code: str | None = None,
        test_id: str | None = None,
        course_code: str | None = None,
        course_id: str | None = None,
    ) -> list[NoteResult]:
        """Record one test of one course for many students."""
        return await self.record(
            scope,
            user_id,
            [
                GradeEntry(
                    score=g.score,
                    registration_number=g.registration_number,
                    student_id=g.student_id,
                    test_code=test_code,
                    test_id=test_id,
                    course_code=course_code,
                    course_id=course_id,
                    max_score=g.max_score,
                    is_absent=g.is_absent,
                    comment=g.comment,
                )
                for g in grades
            ],
        )

    async def record_for_student(
        self,
        scope: RequestScope,
        user_id: str,
        student_id: str,
        grades: Sequence[CourseGrade],
    ) -> list[NoteResult]:
        """Record many (test, course) grades for one student."""
        return await self.record(
            scope,
            user_id,
            [
                GradeEntry(
                    score=g.score,
                    student_id=student_id,
                    test_code=g.test_code,
                    test_id=g.test_id,
                    course_code=g.course_code,
                    course_id=g.course_id,
                    max_score=g.max_score,
                    is_absent=g.is_absent,
                    comment=g.comment,
                )
                for g in grades
            ],
        )

    async def _validate(
        self,
        lookups: _BatchLookups,
        entry: GradeEntry,
        user_id: str,
        entered_at: datetime,
    ) -> NoteUpsert:
        student = await lookups.student(entry)
        course = await lookups.course(entry)
        test = await lookups.test(entry)
        if not await lookups.is_enrolled(student.id, course.id):
            raise ForbiddenException(
                f"Student {student.registration_number} is not enrolled in course "
                f"{course.code} for this academic year",
                {"student_id": student.id, "course_id": course.id},
            )
        max_score = (
            entry.max_score if entry.max_score is not None else self._default_max_score
        )
        check_score(entry.score, max_score, student=student.registration_number)
        return NoteUpsert(
            student_id=student.id,
            test_id=test.id,
            course_id=course.id,
            score=entry.score,
            max_score=max_score,
            is_absent=entry.is_absent,
            comment=entry.comment,
            entered_by=user_id,
            entered_at=entered_at,
        )

    async def _resolve_student(self, tenant_id: str, kind: str, value: str) -> StudentResult:
        if kind == "id":
            student = await self._student_repo.get_by_id(value)
            if student is not None and student.academy_id != tenant_id:
                student = None
        else:
            student = await self._student_repo.get_by_registration_number(tenant_id, value)
        if student is None:
            raise NotFoundException(
                "student",
                value,
                message=f"Student with {kind.replace('_', ' ')} '{value}' not found",
            )
        return student

    async def _resolve_course(self, tenant_id: str, kind: str, value: str) -> CourseResult:
        if kind == "id":
            course = await self._course_repo.get_by_id(value)
            if course is not None and course.academy_id != tenant_id:
                course = None
        else:
            course = await self._course_repo.get_by_code(tenant_id, value)
        if course is None:
            raise NotFoundException(
                "course", value, message=f"Course with {kind} '{value}' not found"
            )
        return course

    async def _resolve_test(self, year_id: str, kind: str, value: str) -> AcademicTestResult:
        if kind == "code":
            return await self._test_codes.resolve(year_id, TestCode.parse(value))
        test = await self._test_repo.get_by_id(value)
        if test is None:
            raise NotFoundException("test", value, message=f"Test with id '{value}' not found")
        trimester = await self._trimester_repo.get_by_id(test.trimester_id)
        if trimester is None or trimester.academic_year_id != year_id:
            raise ForbiddenException(
                f"Test '{value}' does not belong to the selected academic year",
                {"test_id": value, "academic_year_id": year_id},
            )
        return test
