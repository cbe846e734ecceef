"""DTOs for trimesters and tests."""

from dataclasses import dataclass
from datetime import date

from academy.domain.enums import TestType


@dataclass(frozen=True)
class TrimesterResult:
    """Trimester of an academic year; order is its 1-based position."""

    id: str
    academic_year_id: str
    name: str
    order: int
    start_date: date
    end_date: date
    percentage: float
    is_active: bool = True


@dataclass(frozen=True)
class AcademicTestResult:
    """Test (exam, quiz, ...) held during a trimester."""

    id: str
    trimester_id: str
    name: str
    type: TestType
    date: date
    percentage: float
    description: str | None = None
