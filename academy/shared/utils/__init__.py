"""Small helpers with no domain knowledge."""

from academy.shared.utils.datetime import utc_now
from academy.shared.utils.generators import generate_uuid

__all__ = ["generate_uuid", "utc_now"]
