"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current principal extraction from the identity provider's bearer token
- Educator role gate
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from edumarket.auth.permissions import UserRole
from edumarket.auth.schemas import Principal
from edumarket.auth.security import decode_identity_token, principal_from_payload
from edumarket.core.context import set_user_id
from edumarket.core.exceptions import ForbiddenError


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI request

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get current authenticated principal from the identity token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_identity_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    principal = principal_from_payload(payload)

    # Set user_id in context for logging
    set_user_id(principal.user_id)

    return principal


async def require_educator(
    user: Annotated[Principal, Depends(get_current_user)],
) -> Principal:
    """Require the EDUCATOR role.

    Raises:
        ForbiddenError: If the caller is a student
    """
    if user.role != UserRole.EDUCATOR:
        raise ForbiddenError("Educator role required", "educator_required")
    return user


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[Principal, Depends(get_current_user)]
EducatorUser = Annotated[Principal, Depends(require_educator)]
