"""Pydantic schemas for authentication."""

from pydantic import BaseModel, Field

from edumarket.auth.permissions import UserRole


class Principal(BaseModel):
    """Authenticated caller, as asserted by the identity provider's token."""

    user_id: str = Field(..., min_length=1, description="Identity provider user ID")
    role: UserRole = Field(UserRole.STUDENT, description="Resolved role")

    @property
    def is_educator(self) -> bool:
        """Check if caller is an educator."""
        return self.role == UserRole.EDUCATOR
