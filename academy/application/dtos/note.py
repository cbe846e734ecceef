"""DTOs for grade recording (notes)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class NoteResult:
    """Grade record read-model. Unique per (student_id, test_id)."""

    id: str
    student_id: str
    test_id: str
    course_id: str
    score: float
    max_score: float
    is_absent: bool
    comment: str | None
    entered_by: str | None
    entered_at: datetime | None


@dataclass(frozen=True)
class NoteUpsert:
    """One fully resolved row of a grade batch, ready for the store."""

    student_id: str
    test_id: str
    course_id: str
    score: float
    max_score: float
    is_absent: bool
    comment: str | None
    entered_by: str
    entered_at: datetime


@dataclass(frozen=True)
class GradeEntry:
    """One submitted grade. Each reference is given either by id or by human-facing code.

    registration_number / student_id, test_code (Trim{N}-{M}) / test_id,
    course_code / course_id. When both forms are given the id wins.
    """

    score: float
    registration_number: str | None = None
    student_id: str | None = None
    test_code: str | None = None
    test_id: str | None = None
    course_code: str | None = None
    course_id: str | None = None
    max_score: float | None = None
    is_absent: bool = False
    comment: str | None = None


@dataclass(frozen=True)
class StudentGrade:
    """One student's grade on a test/course fixed by the caller."""

    score: float
    registration_number: str | None = None
    student_id: str | None = None
    max_score: float | None = None
    is_absent: bool = False
    comment: str | None = None


@dataclass(frozen=True)
class CourseGrade:
    """One (test, course) grade of a student fixed by the caller."""

    score: float
    test_code: str | None = None
    test_id: str | None = None
    course_code: str | None = None
    course_id: str | None = None
    max_score: float | None = None
    is_absent: bool = False
    comment: str | None = None
