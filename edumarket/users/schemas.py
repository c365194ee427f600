"""Pydantic schemas for users."""

from datetime import datetime

from pydantic import BaseModel

from edumarket.auth.permissions import UserRole, resolve_role
from edumarket.users.models import User


class UserResponse(BaseModel):
    """User profile response."""

    user_id: str
    name: str
    email: str | None = None
    image_url: str | None = None
    role: UserRole
    created_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        """Create response from entity."""
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            image_url=user.image_url,
            role=resolve_role(user.role),
            created_at=user.created_at,
        )


class RoleUpdateResponse(BaseModel):
    """Become-educator response."""

    role: UserRole
    message: str


class IdentityWebhookAckResponse(BaseModel):
    """Identity webhook acknowledgement.

    ``result`` is ``synced``, ``removed`` or ``ignored``.
    """

    received: bool = True
    result: str
    user_id: str | None = None
