"""AcademicYear ORM model."""

from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import AcademyScopedModel


class AcademicYear(AcademyScopedModel, Base):
    """School year of an academy. At most one row per academy has is_current.

    Exclusivity is kept by the repository's single-statement set_current rather
    than a partial unique index, which Postgres would check row by row.
    """

    __tablename__ = "academic_years"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="academic_year_dates_check"),
        Index("ix_academic_year_academy_current", "academy_id", "is_current"),
    )
