"""DTOs for academic year use cases (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class AcademicYearResult:
    """Academic year read-model."""

    id: str
    academy_id: str
    name: str
    start_date: date
    end_date: date
    is_current: bool
    is_active: bool = True

    def overlaps(self, start: date, end: date) -> bool:
        """Return True if [start, end] intersects this year's dates (bounds inclusive)."""
        return start <= self.end_date and end >= self.start_date
