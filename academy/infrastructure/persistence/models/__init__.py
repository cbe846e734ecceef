"""ORM models. Import from here so every table is registered on Base.metadata."""

from academy.infrastructure.persistence.models.academic_year import AcademicYear
from academy.infrastructure.persistence.models.academy import Academy
from academy.infrastructure.persistence.models.assessment import AcademicTest, Trimester
from academy.infrastructure.persistence.models.course import Course, CourseClass
from academy.infrastructure.persistence.models.note import Note
from academy.infrastructure.persistence.models.school_class import ClassYear, SchoolClass
from academy.infrastructure.persistence.models.student import Student, StudentInscription

__all__ = [
    "AcademicTest",
    "AcademicYear",
    "Academy",
    "ClassYear",
    "Course",
    "CourseClass",
    "Note",
    "SchoolClass",
    "Student",
    "StudentInscription",
    "Trimester",
]
