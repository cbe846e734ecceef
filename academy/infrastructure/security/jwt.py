"""JWT verification for authentication. Token issuance lives in the identity service.

Uses academy.core.config for secret and algorithm.
"""

from typing import Any

from jose import JWTError, jwt

from academy.core.config import get_settings
from academy.domain.enums import UserRole
from academy.domain.value_objects.scope import Principal

# Claims that may carry the academy (tenant) of the user, in lookup order.
_TENANT_CLAIMS = ("academy_id", "tenant_id")


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT. Returns the payload.

    Enforces presence of exp and sub. Raises ValueError if the token is
    invalid, expired, or missing required claims.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if "sub" not in payload:
        raise ValueError("Token missing required claim: sub")
    return payload


def principal_from_payload(payload: dict[str, Any]) -> Principal:
    """Build the authenticated Principal from decoded claims.

    A missing or empty academy claim means the user has not joined an academy
    yet; an unknown role falls back to staff.
    """
    tenant_id = next((payload[c] for c in _TENANT_CLAIMS if payload.get(c)), None)
    try:
        role = UserRole(payload.get("role", UserRole.STAFF.value))
    except ValueError:
        role = UserRole.STAFF
    return Principal(user_id=str(payload["sub"]), tenant_id=tenant_id, role=role)
