"""Identifier format validation for request scope and lookups.

Shared by the academic-year resolver and the API dependencies so malformed
identifiers are rejected before they reach the store or a cache key.
"""

import uuid


def is_valid_uuid(value: str | None) -> bool:
    """Return True if value is a canonical UUID string (any version)."""
    if not value:
        return False
    try:
        parsed = uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return str(parsed) == value.lower()
