# ruff: noqa: S608
"""User cache service layer.

Users are materialized lazily: the first request that needs a user row reads
the profile from the identity provider and inserts it with
``IF NOT EXISTS``. When two requests race, the loser discards its copy and
reads the winner's row, so the cache never holds two versions of a user.

Identity provider webhooks keep the cache fresh: profile changes overwrite the
cached fields and deleted users are dropped from the cache.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from edumarket.auth.permissions import UserRole
from edumarket.core.database.conditional import execute_conditional
from edumarket.identity.client import IdentityProfile, IdentityProviderClient
from edumarket.users.models import User


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class UserService:
    """Service for the local user cache."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        identity_client: IdentityProviderClient,
    ):
        """Initialize with Cassandra session and identity provider client."""
        self.session = session
        self.keyspace = keyspace
        self.identity_client = identity_client
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE user_id = ?"
        )

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (user_id, name, email, image_url, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_users_in = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE user_id IN ?"
        )

        self._update_role = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET role = ?, updated_at = ?
            WHERE user_id = ?
        """)

        self._update_profile = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET name = ?, email = ?, image_url = ?, role = ?, updated_at = ?
            WHERE user_id = ?
        """)

        self._delete_user = self.session.prepare(
            f"DELETE FROM {self.keyspace}.users WHERE user_id = ?"
        )

    async def get_user(self, user_id: str) -> User | None:
        """Get cached user by ID, without contacting the identity provider."""
        result = await self.session.aexecute(self._get_user, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_users(self, user_ids: list[str]) -> dict[str, User]:
        """Cached users by ID; IDs not yet materialized are absent."""
        if not user_ids:
            return {}
        rows = await self.session.aexecute(self._get_users_in, [list(set(user_ids))])
        return {row.user_id: User.from_row(row) for row in rows}

    async def _insert_if_absent(self, user: User) -> bool:
        """Insert the user row unless one exists; True when this call wrote it."""
        result = await execute_conditional(
            self.session,
            self._insert_user,
            [
                user.user_id,
                user.name,
                user.email,
                user.image_url,
                user.role,
                user.created_at,
                user.updated_at,
            ],
        )
        return result.was_applied

    async def get_or_create(self, user_id: str) -> User:
        """Get the cached user, materializing it on first access.

        Raises:
            NotFoundError: If the identity provider does not know the user
            UpstreamUnavailableError: If the identity provider is unreachable
        """
        user = await self.get_user(user_id)
        if user is not None:
            return user

        profile = await self.identity_client.get_user(user_id)
        user = self._user_from_profile(profile)

        if not await self._insert_if_absent(user):
            # Lost the race: another request materialized the user first
            winner = await self.get_user(user_id)
            logger.debug("user_materialization_lost_race", user_id=user_id)
            return winner or user

        logger.info("user_materialized", user_id=user_id, role=user.role)
        return user

    async def sync_profile(self, profile: IdentityProfile) -> User:
        """Write an identity provider profile into the cache.

        A new user is inserted; an existing row gets its profile fields
        overwritten and keeps its ``created_at``.
        """
        user = self._user_from_profile(profile)
        if await self._insert_if_absent(user):
            logger.info("user_synced", user_id=user.user_id, created=True)
            return user

        await self.session.aexecute(
            self._update_profile,
            [
                user.name,
                user.email,
                user.image_url,
                user.role,
                user.updated_at,
                user.user_id,
            ],
        )
        logger.info("user_synced", user_id=user.user_id, created=False)
        return user

    async def remove_user(self, user_id: str) -> None:
        """Drop a deleted user from the cache.

        Enrollments, purchases and ratings keep referencing the ID.
        """
        await self.session.aexecute(self._delete_user, [user_id])
        logger.info("user_removed", user_id=user_id)

    @staticmethod
    def _user_from_profile(profile: IdentityProfile) -> User:
        now = datetime.now(UTC)
        return User(
            user_id=profile.user_id,
            name=profile.name,
            email=profile.email,
            image_url=profile.image_url,
            role=profile.role.value,
            created_at=now,
            updated_at=now,
        )

    async def update_role_to_educator(self, user_id: str) -> User:
        """Grant the educator role at the identity provider and in the cache."""
        user = await self.get_or_create(user_id)

        await self.identity_client.update_public_metadata(
            user_id, {"role": UserRole.EDUCATOR.value}
        )

        now = datetime.now(UTC)
        await self.session.aexecute(
            self._update_role, [UserRole.EDUCATOR.value, now, user_id]
        )
        user.role = UserRole.EDUCATOR.value
        user.updated_at = now

        logger.info("user_role_updated", user_id=user_id, role=user.role)
        return user
