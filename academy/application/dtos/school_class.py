"""DTOs for school class use cases."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SchoolClassResult:
    """School class (grade level, e.g. "6eme") read-model."""

    id: str
    academy_id: str
    code: str
    name: str
    level: int
    is_active: bool = True


@dataclass(frozen=True)
class ClassYearResult:
    """A class opened for one academic year."""

    id: str
    academy_id: str
    class_id: str
    academic_year_id: str
    section: str | None = None
    room_number: str | None = None
    max_students: int | None = None
    is_active: bool = True
