"""Domain value objects and shared value types."""

from academy.domain.value_objects.codes import TestCode
from academy.domain.value_objects.scope import (
    AcademicYearContext,
    Principal,
    RequestScope,
)

__all__ = [
    "AcademicYearContext",
    "Principal",
    "RequestScope",
    "TestCode",
]
