"""Clock helper. Timestamps stored by the service (entered_at) are UTC-aware."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime (default clock of the grade services)."""
    return datetime.now(UTC)
