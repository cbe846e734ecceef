"""DTOs for course use cases."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CourseResult:
    """Course read-model. category partitions the by-category list cache."""

    id: str
    academy_id: str
    code: str
    name: str
    category: str | None = None
    is_active: bool = True
