"""Trimester and test use cases."""

from academy.application.use_cases.assessments.assessment_operations import (
    AssessmentService,
)

__all__ = ["AssessmentService"]
