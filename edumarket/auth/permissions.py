"""Role resolution for EduMarket.

Two roles, resolved once at the authorization boundary:
- STUDENT: Default for every signed-in user
- EDUCATOR: May publish courses and see their dashboard

The identity provider stores the role as a free-form metadata string; anything
other than ``"educator"`` (including a missing claim) resolves to STUDENT.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any


class UserRole(str, Enum):
    """User roles."""

    STUDENT = "student"
    EDUCATOR = "educator"


def resolve_role(raw: Any) -> UserRole:
    """Map a raw role claim to a UserRole.

    Examples:
        >>> resolve_role("educator")
        <UserRole.EDUCATOR: 'educator'>
        >>> resolve_role(None)
        <UserRole.STUDENT: 'student'>
        >>> resolve_role("admin")
        <UserRole.STUDENT: 'student'>
    """
    if isinstance(raw, UserRole):
        return raw
    if isinstance(raw, str) and raw.strip().lower() == UserRole.EDUCATOR.value:
        return UserRole.EDUCATOR
    return UserRole.STUDENT


def extract_role_claim(payload: Mapping[str, Any], claim_path: str) -> Any:
    """Read a possibly nested claim, e.g. ``"public_metadata.role"``."""
    value: Any = payload
    for part in claim_path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def is_educator(role: UserRole | str) -> bool:
    """Check if role is EDUCATOR."""
    return resolve_role(role) == UserRole.EDUCATOR
