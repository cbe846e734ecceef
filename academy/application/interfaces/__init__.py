"""Application ports (Protocols implemented by infrastructure)."""

from academy.application.interfaces.repositories import (
    IAcademicTestRepository,
    IAcademicYearRepository,
    ICourseRepository,
    IEnrollmentRepository,
    INoteRepository,
    ISchoolClassRepository,
    IStudentRepository,
    ITrimesterRepository,
)

__all__ = [
    "IAcademicTestRepository",
    "IAcademicYearRepository",
    "ICourseRepository",
    "IEnrollmentRepository",
    "INoteRepository",
    "ISchoolClassRepository",
    "IStudentRepository",
    "ITrimesterRepository",
]
