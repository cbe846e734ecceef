"""Domain enumerations for the academy service.

Enums represent fixed sets of domain values (e.g. inscription status).
"""

from enum import Enum


class _ValuesMixin:
    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for CHECK constraints)."""
        return [member.value for member in cls]  # type: ignore[attr-defined]


class InscriptionStatus(_ValuesMixin, str, Enum):
    """Student inscription lifecycle. Only CONFIRMED counts as enrolled."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class TestType(_ValuesMixin, str, Enum):
    """Kind of assessment a test represents."""

    __test__ = False

    EXAM = "exam"
    QUIZ = "quiz"
    HOMEWORK = "homework"
    PRACTICAL = "practical"
    ORAL = "oral"


class UserRole(_ValuesMixin, str, Enum):
    """Role carried by the authenticated principal."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STAFF = "staff"


class YearResolution(str, Enum):
    """How the academic year of a request scope was obtained."""

    EXPLICIT = "explicit"
    FALLBACK = "fallback"
