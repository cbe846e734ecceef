"""DTOs for student use cases."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StudentResult:
    """Student read-model. registration_number is unique within an academy."""

    id: str
    academy_id: str
    registration_number: str
    first_name: str
    last_name: str
    is_active: bool = True
