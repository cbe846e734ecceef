"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports. Reads may
be served from cache by the implementation; writes invalidate after commit.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from academy.application.dtos.academic_year import AcademicYearResult
    from academy.application.dtos.assessment import AcademicTestResult, TrimesterResult
    from academy.application.dtos.course import CourseResult
    from academy.application.dtos.enrollment import EnrollmentResult
    from academy.application.dtos.note import NoteResult, NoteUpsert
    from academy.application.dtos.school_class import ClassYearResult, SchoolClassResult
    from academy.application.dtos.student import StudentResult
    from academy.domain.enums import InscriptionStatus


class IAcademicYearRepository(Protocol):
    """Protocol for academic year repository (DIP)."""

    async def get_by_id(self, academic_year_id: str) -> AcademicYearResult | None:
        """Return academic year by id (any tenant; caller checks ownership)."""

    async def get_current(self, academy_id: str) -> AcademicYearResult | None:
        """Return the academy's year flagged current, if any."""

    async def list_by_academy(self, academy_id: str) -> list[AcademicYearResult]:
        """Return the academy's years, newest start_date first."""

    async def create(
        self,
        academy_id: str,
        name: str,
        start_date: date,
        end_date: date,
        *,
        is_current: bool,
    ) -> AcademicYearResult:
        """Persist a new academic year."""

    async def set_current(
        self, academy_id: str, academic_year_id: str
    ) -> AcademicYearResult | None:
        """Flag one year current and clear the flag on every other year (one transaction)."""


class ISchoolClassRepository(Protocol):
    """Protocol for school class repository (DIP)."""

    async def get_by_id(self, class_id: str) -> SchoolClassResult | None: ...

    async def get_by_code(self, academy_id: str, code: str) -> SchoolClassResult | None: ...

    async def list_all(self, academy_id: str) -> list[SchoolClassResult]: ...

    async def list_active(self, academy_id: str) -> list[SchoolClassResult]: ...

    async def create(
        self, academy_id: str, code: str, name: str, level: int
    ) -> SchoolClassResult: ...

    async def update(self, class_id: str, changes: dict[str, Any]) -> SchoolClassResult | None: ...

    async def delete(self, class_id: str) -> bool: ...


class ICourseRepository(Protocol):
    """Protocol for course repository (DIP)."""

    async def get_by_id(self, course_id: str) -> CourseResult | None: ...

    async def get_by_code(self, academy_id: str, code: str) -> CourseResult | None: ...

    async def list_all(self, academy_id: str) -> list[CourseResult]: ...

    async def list_active(self, academy_id: str) -> list[CourseResult]: ...

    async def list_by_category(self, academy_id: str, category: str) -> list[CourseResult]: ...

    async def create(
        self, academy_id: str, code: str, name: str, category: str | None
    ) -> CourseResult: ...

    async def update(self, course_id: str, changes: dict[str, Any]) -> CourseResult | None: ...

    async def delete(self, course_id: str) -> bool: ...


class IStudentRepository(Protocol):
    """Protocol for student repository (DIP)."""

    async def get_by_id(self, student_id: str) -> StudentResult | None: ...

    async def get_by_registration_number(
        self, academy_id: str, registration_number: str
    ) -> StudentResult | None: ...

    async def list_all(self, academy_id: str) -> list[StudentResult]: ...

    async def list_by_academic_year(
        self, academy_id: str, academic_year_id: str
    ) -> list[StudentResult]:
        """Students with an inscription for the year, by last then first name."""

    async def create(
        self,
        academy_id: str,
        registration_number: str,
        first_name: str,
        last_name: str,
    ) -> StudentResult: ...

    async def update(self, student_id: str, changes: dict[str, Any]) -> StudentResult | None: ...


class IEnrollmentRepository(Protocol):
    """Protocol for the enrollment collaborator (student inscriptions)."""

    async def get_by_id(self, enrollment_id: str) -> EnrollmentResult | None: ...

    async def is_enrolled(
        self, student_id: str, course_id: str, academic_year_id: str
    ) -> bool:
        """True when the student has a confirmed inscription for the year whose
        class year has an active course-class for the course."""

    async def get_class_year_id(
        self, student_id: str, academic_year_id: str
    ) -> str | None:
        """Class year of the student's confirmed inscription for the year."""

    async def course_ids_for_class_year(self, class_year_id: str) -> list[str]:
        """Ids of courses actively taught in the class year."""

    async def list_inscriptions_by_class_year(
        self, class_year_id: str
    ) -> list[EnrollmentResult]: ...

    async def get_class_year(self, class_year_id: str) -> ClassYearResult | None: ...

    async def get_class_year_for_class(
        self, class_id: str, academic_year_id: str
    ) -> ClassYearResult | None: ...

    async def list_class_years_by_academic_year(
        self, academy_id: str, academic_year_id: str
    ) -> list[ClassYearResult]:
        """Class years of the year ordered by class level, then class name."""

    async def list_class_years_by_class(self, class_id: str) -> list[ClassYearResult]:
        """Class years of the class, latest academic year first."""

    async def update_class_year(
        self, class_year_id: str, changes: dict[str, Any]
    ) -> ClassYearResult | None: ...

    async def open_class_year(
        self, academy_id: str, class_id: str, academic_year_id: str
    ) -> str: ...

    async def assign_course(
        self, class_year_id: str, course_id: str, *, is_active: bool = True
    ) -> None: ...

    async def enroll(
        self,
        student_id: str,
        academic_year_id: str,
        class_year_id: str,
        status: InscriptionStatus,
    ) -> EnrollmentResult: ...

    async def update_status(
        self, enrollment_id: str, status: InscriptionStatus
    ) -> EnrollmentResult | None: ...


class ITrimesterRepository(Protocol):
    """Protocol for trimester repository (DIP)."""

    async def get_by_id(self, trimester_id: str) -> TrimesterResult | None: ...

    async def list_by_academic_year(self, academic_year_id: str) -> list[TrimesterResult]:
        """Return trimesters of the year ordered by order."""

    async def create(
        self,
        academic_year_id: str,
        name: str,
        order: int,
        start_date: date,
        end_date: date,
        percentage: float,
    ) -> TrimesterResult: ...

    async def update(self, trimester_id: str, changes: dict[str, Any]) -> TrimesterResult | None: ...

    async def delete(self, trimester_id: str) -> bool: ...


class IAcademicTestRepository(Protocol):
    """Protocol for test repository (DIP)."""

    async def get_by_id(self, test_id: str) -> AcademicTestResult | None: ...

    async def list_by_trimester(self, trimester_id: str) -> list[AcademicTestResult]:
        """Return tests of the trimester ordered by date."""

    async def create(self, trimester_id: str, data: dict[str, Any]) -> AcademicTestResult: ...

    async def update(self, test_id: str, changes: dict[str, Any]) -> AcademicTestResult | None: ...

    async def delete(self, test_id: str) -> bool: ...


class INoteRepository(Protocol):
    """Protocol for note (grade record) repository (DIP)."""

    async def get_by_id(self, note_id: str) -> NoteResult | None: ...

    async def get_by_student_and_test(
        self, student_id: str, test_id: str
    ) -> NoteResult | None: ...

    async def list_by_student(self, student_id: str) -> list[NoteResult]: ...

    async def list_by_test(self, test_id: str) -> list[NoteResult]: ...

    async def list_by_student_and_course(
        self, student_id: str, course_id: str
    ) -> list[NoteResult]: ...

    async def list_by_test_and_course(
        self, test_id: str, course_id: str
    ) -> list[NoteResult]: ...

    async def create(self, row: NoteUpsert) -> NoteResult:
        """Insert one note; ConflictException when (student_id, test_id) exists."""

    async def bulk_upsert(self, rows: list[NoteUpsert]) -> list[NoteResult]:
        """Insert or overwrite one note per (student_id, test_id) in a single statement."""

    async def update(self, note_id: str, changes: dict[str, Any]) -> NoteResult | None: ...

    async def delete(self, note_id: str) -> NoteResult | None:
        """Delete the note and return what was deleted (None when absent)."""

    async def count_by_test(self, test_id: str) -> int: ...
