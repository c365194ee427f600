"""Security utilities for authentication.

Tokens are issued by the external identity provider; this service only
verifies them. Provides:
- Identity token decoding and validation
- Principal extraction (user ID and resolved role)
"""

from typing import Any

from jose import JWTError, jwt

from edumarket.auth.permissions import extract_role_claim, resolve_role
from edumarket.auth.schemas import Principal
from edumarket.config.settings import get_settings


def decode_identity_token(token: str) -> dict[str, Any]:
    """Decode and validate an identity token.

    Validates:
    - JWT signature
    - Expiration time
    - Audience (when configured)
    - Presence of the ``sub`` claim

    Args:
        token: JWT string

    Returns:
        Decoded payload dictionary

    Raises:
        JWTError: If token is invalid, expired, or has no subject
    """
    settings = get_settings()

    options = {"verify_aud": settings.auth_audience is not None}
    payload = jwt.decode(
        token,
        settings.auth_token_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options=options,
    )

    if not payload.get("sub"):
        msg = "Identity token missing sub claim"
        raise JWTError(msg)

    return payload


def principal_from_payload(payload: dict[str, Any]) -> Principal:
    """Build the request principal from a decoded token."""
    settings = get_settings()
    return Principal(
        user_id=payload["sub"],
        role=resolve_role(extract_role_claim(payload, settings.auth_role_claim)),
    )
