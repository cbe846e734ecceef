"""Course and CourseClass ORM models."""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import (
    AcademyScopedModel,
    TimestampMixin,
    UuidMixin,
)


class Course(AcademyScopedModel, Base):
    """Subject taught in an academy (e.g. MATH101). Code unique per academy."""

    __tablename__ = "courses"

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("academy_id", "code", name="uq_course_academy_code"),
    )


class CourseClass(UuidMixin, TimestampMixin, Base):
    """Course taught in a class year."""

    __tablename__ = "course_classes"

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_year_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("class_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("course_id", "class_year_id", name="uq_course_class"),
    )
