"""Student and StudentInscription ORM models."""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.domain.enums import InscriptionStatus
from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import (
    AcademyScopedModel,
    TimestampMixin,
    UuidMixin,
)


class Student(AcademyScopedModel, Base):
    """Student of an academy. Registration number unique per academy."""

    __tablename__ = "students"

    registration_number: Mapped[str] = mapped_column(String(50), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint(
            "academy_id", "registration_number", name="uq_student_academy_registration"
        ),
    )


class StudentInscription(UuidMixin, TimestampMixin, Base):
    """Enrollment of a student in a class year for one academic year."""

    __tablename__ = "student_inscriptions"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    academic_year_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_year_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("class_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InscriptionStatus.PENDING.value
    )

    __table_args__ = (
        Index("ix_inscription_student_year", "student_id", "academic_year_id"),
        CheckConstraint(
            "status IN ({})".format(
                ", ".join("'{}'".format(v) for v in InscriptionStatus.values())
            ),
            name="student_inscription_status_check",
        ),
    )
