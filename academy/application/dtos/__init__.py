"""Application DTOs (no dependency on ORM)."""

from academy.application.dtos.academic_year import AcademicYearResult
from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
from academy.application.dtos.course import CourseResult
from academy.application.dtos.enrollment import EnrollmentResult
from academy.application.dtos.note import (
    CourseGrade,
    GradeEntry,
    NoteResult,
    NoteUpsert,
    StudentGrade,
)
from academy.application.dtos.school_class import ClassYearResult, SchoolClassResult
from academy.application.dtos.student import StudentResult

__all__ = [
    "AcademicTestResult",
    "AcademicYearResult",
    "ClassYearResult",
    "CourseGrade",
    "CourseResult",
    "EnrollmentResult",
    "GradeEntry",
    "NoteResult",
    "NoteUpsert",
    "SchoolClassResult",
    "StudentGrade",
    "StudentResult",
    "TrimesterResult",
]
