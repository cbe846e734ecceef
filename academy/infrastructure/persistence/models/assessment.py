"""Trimester and AcademicTest ORM models."""

from datetime import date as date_type

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from academy.domain.enums import TestType
from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import TimestampMixin, UuidMixin


class Trimester(UuidMixin, TimestampMixin, Base):
    """Trimester of an academic year; order is unique within the year."""

    __tablename__ = "trimesters"

    academic_year_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    end_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    percentage: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("academic_year_id", "order", name="uq_trimester_year_order"),
    )


class AcademicTest(UuidMixin, TimestampMixin, Base):
    """Test (exam, quiz, ...) of a trimester. Table: tests."""

    __tablename__ = "tests"

    trimester_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("trimesters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    percentage: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "type IN ({})".format(", ".join("'{}'".format(v) for v in TestType.values())),
            name="test_type_check",
        ),
    )
