"""SQLAlchemy mixins for common model patterns (DRY).

Provides: UuidMixin, AcademyMixin, TimestampMixin and the combined
AcademyScopedModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from academy.shared.utils.generators import generate_uuid


class UuidMixin:
    """Mixin for models keyed by a UUID string. Provides id with default generate_uuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String(36), primary_key=True, default=generate_uuid)


class AcademyMixin:
    """Mixin for tenant-owned models. Provides academy_id FK with CASCADE delete."""

    @declared_attr
    def academy_id(cls) -> Mapped[str]:
        return mapped_column(
            String(36),
            ForeignKey("academies.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class TimestampMixin:
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class AcademyScopedModel(UuidMixin, AcademyMixin, TimestampMixin):
    """Combined mixin: UUID + academy_id + created_at/updated_at."""

    __abstract__ = True
