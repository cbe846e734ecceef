"""Academic year use cases."""

from academy.application.use_cases.academic_years.academic_year_operations import (
    AcademicYearService,
)

__all__ = ["AcademicYearService"]
