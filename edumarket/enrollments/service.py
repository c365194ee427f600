# ruff: noqa: S608
"""Enrollment service layer.

Single owner of both membership views:
- ``enrollments`` (by course) is the source of truth, written with
  ``INSERT ... IF NOT EXISTS`` so exactly one caller creates the row
- ``enrollments_by_user`` is derived, always rewritten from the winning row

Every enroll call, winner or loser, rewrites the derived row. A crash between
the two writes is therefore repaired by the next enroll for the same pair
(a redelivered payment notification, for instance).
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from edumarket.core.database.conditional import execute_conditional
from edumarket.core.redis import enrollment_cache_key
from edumarket.enrollments.models import Enrollment, EnrollmentOutcome, EnrollmentResult


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 3600


class EnrollmentService:
    """Service for course enrollment membership."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        """Initialize with Cassandra session and optional Redis cache."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments (source of truth)
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, user_id, enrolled_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._get_course_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ?
        """)

        self._get_courses_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id IN ?
        """)

        # Enrollments by user (derived lookup)
        self._upsert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, enrolled_at)
            VALUES (?, ?, ?)
        """)

        self._get_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(self, user_id: str, course_id: str) -> EnrollmentResult:
        """Enroll user in a course; safe to call any number of times.

        Returns:
            EnrollmentResult with outcome ``enrolled`` for the call that
            created the membership, ``already_enrolled`` otherwise

        Raises:
            ConflictError: If the conditional insert timed out undecided
        """
        now = datetime.now(UTC)
        result = await execute_conditional(
            self.session, self._insert_enrollment, [course_id, user_id, now]
        )

        if result.was_applied:
            enrollment = Enrollment(course_id=course_id, user_id=user_id, enrolled_at=now)
            outcome = EnrollmentOutcome.ENROLLED
        else:
            # LWT returns the existing row when the condition fails
            existing = result.one()
            enrollment = Enrollment(
                course_id=course_id,
                user_id=user_id,
                enrolled_at=getattr(existing, "enrolled_at", None) or now,
            )
            outcome = EnrollmentOutcome.ALREADY_ENROLLED

        await self.session.aexecute(
            self._upsert_enrollment_by_user,
            [user_id, course_id, enrollment.enrolled_at],
        )
        await self._cache_membership(user_id, course_id)

        logger.info(
            "enrollment_created"
            if outcome == EnrollmentOutcome.ENROLLED
            else "enrollment_already_exists",
            user_id=user_id,
            course_id=course_id,
        )

        return EnrollmentResult(enrollment=enrollment, outcome=outcome)

    async def get_enrollment(self, user_id: str, course_id: str) -> Enrollment | None:
        """Get enrollment by user and course from the source of truth."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def is_enrolled(self, user_id: str, course_id: str) -> bool:
        """Check membership.

        Only positive answers are cached; membership never goes away.
        """
        if self.redis and await self.redis.get(enrollment_cache_key(user_id, course_id)):
            return True

        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            return False

        await self._cache_membership(user_id, course_id)
        return True

    async def list_user_enrollments(self, user_id: str) -> list[Enrollment]:
        """Get a user's enrollments in enrollment order."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        return sorted(enrollments, key=lambda enrollment: enrollment.enrolled_at)

    async def list_user_courses(self, user_id: str) -> list[str]:
        """Course IDs a user is enrolled in, in enrollment order."""
        return [e.course_id for e in await self.list_user_enrollments(user_id)]

    async def list_course_students(self, course_id: str) -> list[str]:
        """User IDs enrolled in a course, in enrollment order."""
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        enrollments = sorted(
            (Enrollment.from_row(row) for row in rows),
            key=lambda enrollment: enrollment.enrolled_at,
        )
        return [enrollment.user_id for enrollment in enrollments]

    async def list_enrollments_for_courses(
        self, course_ids: list[str]
    ) -> list[Enrollment]:
        """Every (student, course) membership across several courses."""
        if not course_ids:
            return []
        rows = await self.session.aexecute(
            self._get_courses_enrollments, [list(course_ids)]
        )
        return [Enrollment.from_row(row) for row in rows]

    # ==========================================================================
    # Cache
    # ==========================================================================

    async def _cache_membership(self, user_id: str, course_id: str) -> None:
        if not self.redis:
            return
        await self.redis.setex(
            enrollment_cache_key(user_id, course_id), self.cache_ttl_seconds, "1"
        )
