"""Repositories: SQLAlchemy data access with cache-aside reads.

Each repository implements its Protocol from academy.application.interfaces
and returns application DTOs.
"""

from academy.infrastructure.persistence.repositories.academic_test_repo import (
    AcademicTestRepository,
)
from academy.infrastructure.persistence.repositories.academic_year_repo import (
    AcademicYearRepository,
)
from academy.infrastructure.persistence.repositories.base import BaseRepository
from academy.infrastructure.persistence.repositories.course_repo import CourseRepository
from academy.infrastructure.persistence.repositories.enrollment_repo import (
    EnrollmentRepository,
)
from academy.infrastructure.persistence.repositories.note_repo import NoteRepository
from academy.infrastructure.persistence.repositories.school_class_repo import (
    SchoolClassRepository,
)
from academy.infrastructure.persistence.repositories.student_repo import StudentRepository
from academy.infrastructure.persistence.repositories.trimester_repo import (
    TrimesterRepository,
)

__all__ = [
    "AcademicTestRepository",
    "AcademicYearRepository",
    "BaseRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "NoteRepository",
    "SchoolClassRepository",
    "StudentRepository",
    "TrimesterRepository",
]
