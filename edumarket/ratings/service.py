# ruff: noqa: S608
"""Course rating service layer.

One rating per (user, course), stored as an entry of the course row's
``course_ratings`` map. Re-rating overwrites the entry in a single write, so
concurrent rates by different users never drop each other.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from edumarket.core.exceptions import InvalidArgumentError, NotEnrolledError
from edumarket.courses.aggregates import average_rating
from edumarket.courses.models import Course
from edumarket.courses.service import CourseService
from edumarket.enrollments.service import EnrollmentService


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingOutcome(str, Enum):
    """Result of a rate call."""

    CREATED = "created"
    UPDATED = "updated"


class RatingResult:
    """Outcome of ``RatingService.rate``."""

    def __init__(
        self,
        course_id: str,
        rating: int,
        outcome: RatingOutcome,
        average_rating: int,
        rating_count: int,
    ):
        self.course_id = course_id
        self.rating = rating
        self.outcome = outcome
        self.average_rating = average_rating
        self.rating_count = rating_count


def validate_rating(rating: Any) -> int:
    """Return ``rating`` if it is an integer in [1, 5].

    Raises:
        InvalidArgumentError: Otherwise
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidArgumentError("Rating must be an integer", "invalid_rating")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidArgumentError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}", "invalid_rating"
        )
    return rating


class RatingService:
    """Service for course ratings."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        enrollment_service: EnrollmentService,
        course_service: CourseService,
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.enrollment_service = enrollment_service
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._upsert_rating = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET course_ratings[?] = ?, updated_at = ?
            WHERE course_id = ?
        """)

    async def rate(self, user_id: str, course_id: str, rating: Any) -> RatingResult:
        """Create or replace the user's rating of a course.

        Raises:
            InvalidArgumentError: If rating is not an integer in [1, 5]
            NotFoundError: If the course does not exist
            NotEnrolledError: If the user is not enrolled in the course
        """
        rating = validate_rating(rating)
        course = await self.course_service.require_course(course_id)

        if not await self.enrollment_service.is_enrolled(user_id, course_id):
            raise NotEnrolledError

        outcome = (
            RatingOutcome.UPDATED
            if user_id in course.course_ratings
            else RatingOutcome.CREATED
        )

        await self.session.aexecute(
            self._upsert_rating, [user_id, rating, datetime.now(UTC), course_id]
        )
        course.course_ratings[user_id] = rating

        logger.info(
            "course_rated",
            user_id=user_id,
            course_id=course_id,
            rating=rating,
            outcome=outcome.value,
        )

        return RatingResult(
            course_id=course_id,
            rating=rating,
            outcome=outcome,
            average_rating=average_rating(course.course_ratings),
            rating_count=len(course.course_ratings),
        )

    @staticmethod
    def average_rating(course: Course) -> int:
        """Floor of the mean rating, 0 with no ratings."""
        return average_rating(course.course_ratings)
