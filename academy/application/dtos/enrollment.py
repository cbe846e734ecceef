"""DTOs for student inscriptions (enrollments)."""

from dataclasses import dataclass

from academy.domain.enums import InscriptionStatus


@dataclass(frozen=True)
class EnrollmentResult:
    """Inscription of a student in a class year for one academic year."""

    id: str
    student_id: str
    academic_year_id: str
    class_year_id: str
    status: InscriptionStatus
