"""Database models for the local user cache.

The identity provider owns user profiles; this table is a cache that is
materialized on first access and refreshed on role changes.
"""

from datetime import UTC, datetime
from typing import Any


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    user_id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    image_url TEXT,
    role TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# All CQL statements for table setup
USERS_TABLES_CQL = [
    USERS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class User:
    """Cached user entity.

    Attributes:
        user_id: Identity provider user ID
        name: Display name
        email: Primary email address
        image_url: Avatar URL
        role: ``student`` or ``educator``
        created_at: When the cache row was materialized
        updated_at: Last refresh
    """

    def __init__(
        self,
        user_id: str,
        name: str,
        email: str | None = None,
        image_url: str | None = None,
        role: str = "student",
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.name = name
        self.email = email
        self.image_url = image_url
        self.role = role
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            name=row.name or "",
            email=row.email,
            image_url=row.image_url,
            role=row.role or "student",
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.user_id} {self.role}>"
