"""Catalog use cases: classes, courses, students and enrollments."""

from academy.application.use_cases.catalog.course_operations import CourseService
from academy.application.use_cases.catalog.school_class_operations import (
    SchoolClassService,
)
from academy.application.use_cases.catalog.student_operations import StudentService

__all__ = ["CourseService", "SchoolClassService", "StudentService"]
