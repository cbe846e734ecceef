"""Note (grade record) ORM model."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from academy.core.constants import DEFAULT_MAX_SCORE
from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import TimestampMixin, UuidMixin


class Note(UuidMixin, TimestampMixin, Base):
    """Score of one student on one test. Unique per (student_id, test_id)."""

    __tablename__ = "notes"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    max_score: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=DEFAULT_MAX_SCORE
    )
    is_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    entered_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    entered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("student_id", "test_id", name="uq_note_student_test"),
        CheckConstraint("score >= 0 AND score <= max_score", name="note_score_range_check"),
    )
