"""Academy ORM model. Root of the tenant hierarchy (no academy_id)."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from academy.infrastructure.persistence.database import Base
from academy.infrastructure.persistence.models.mixins import TimestampMixin, UuidMixin


class Academy(UuidMixin, TimestampMixin, Base):
    """Tenant. Table: academies."""

    __tablename__ = "academies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
