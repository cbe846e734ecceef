"""Security: token verification."""

from academy.infrastructure.security.jwt import principal_from_payload, verify_token

__all__ = ["principal_from_payload", "verify_token"]
