"""SchoolClass and ClassYear ORM models."""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import AcademyScopedModel


class SchoolClass(AcademyScopedModel, Base):
    """Grade level of an academy (e.g. 6eme). Code unique per academy."""

    __tablename__ = "classes"

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("academy_id", "code", name="uq_class_academy_code"),
    )


class ClassYear(AcademyScopedModel, Base):
    """A class as opened for one academic year (students enroll here)."""

    __tablename__ = "class_years"

    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    academic_year_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section: Mapped[str | None] = mapped_column(String(20), nullable=True)
    room_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    max_students: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("class_id", "academic_year_id", name="uq_class_year"),
    )
