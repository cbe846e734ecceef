"""ID generators."""

import uuid


def generate_uuid() -> str:
    """Generate a random (version 4) UUID as its canonical string form."""
    return str(uuid.uuid4())
