# ruff: noqa: S608
"""Learner progress tracking service layer.

Business logic for:
- Marking lectures completed (enrolled learners only)
- Progress queries and course-level summary
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import structlog

from edumarket.core.exceptions import NotEnrolledError
from edumarket.courses.aggregates import lecture_count, lecture_ids
from edumarket.courses.service import CourseService
from edumarket.enrollments.service import EnrollmentService

from .models import CourseProgress, ProgressOutcome, ProgressUpdateResult


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProgressService:
    """Service for learner progress tracking."""

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
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Add-to-set keeps concurrent completions for the same learner
        self._add_completed_lecture = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET lecture_completed = lecture_completed + ?, updated_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

        self._add_first_completed_lecture = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET lecture_completed = lecture_completed + ?, created_at = ?,
                updated_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Completion Operations
    # ==========================================================================

    async def mark_completed(
        self, user_id: str, course_id: str, lecture_id: str
    ) -> ProgressUpdateResult:
        """Mark a lecture completed for an enrolled learner.

        Returns:
            ProgressUpdateResult with outcome ``completed`` or
            ``already_completed``

        Raises:
            NotEnrolledError: If the user is not enrolled; nothing is written
        """
        if not await self.enrollment_service.is_enrolled(user_id, course_id):
            logger.warning(
                "progress_rejected_not_enrolled",
                user_id=user_id,
                course_id=course_id,
                lecture_id=lecture_id,
            )
            raise NotEnrolledError

        progress = await self.get_progress(user_id, course_id)
        if progress is not None and progress.is_lecture_completed(lecture_id):
            return ProgressUpdateResult(progress, ProgressOutcome.ALREADY_COMPLETED)

        now = datetime.now(UTC)
        if progress is None:
            await self.session.aexecute(
                self._add_first_completed_lecture,
                [{lecture_id}, now, now, user_id, course_id],
            )
            progress = CourseProgress(
                user_id=user_id, course_id=course_id, created_at=now
            )
        else:
            await self.session.aexecute(
                self._add_completed_lecture,
                [{lecture_id}, now, user_id, course_id],
            )

        progress.lecture_completed.add(lecture_id)
        progress.updated_at = now

        logger.info(
            "lecture_completed",
            user_id=user_id,
            course_id=course_id,
            lecture_id=lecture_id,
            completed_count=progress.completed_count,
        )
        return ProgressUpdateResult(progress, ProgressOutcome.COMPLETED)

    # ==========================================================================
    # Query Operations
    # ==========================================================================

    async def get_progress(self, user_id: str, course_id: str) -> CourseProgress | None:
        """Get progress record, None when the learner completed nothing yet."""
        result = await self.session.aexecute(self._get_progress, [user_id, course_id])
        row = result.one()
        return CourseProgress.from_row(row) if row else None

    async def get_progress_summary(
        self, user_id: str, course_id: str
    ) -> tuple[CourseProgress | None, int, int, Decimal]:
        """Completion summary for a learner's course.

        Returns:
            Tuple of (progress, completed_lectures, total_lectures, percent).
            Only lectures still present in the course are counted.

        Raises:
            NotFoundError: If the course does not exist
        """
        course = await self.course_service.require_course(course_id)
        progress = await self.get_progress(user_id, course_id)

        total = lecture_count(course.course_content)
        completed = (
            len(progress.lecture_completed & lecture_ids(course.course_content))
            if progress
            else 0
        )
        percent = (
            (Decimal(completed) * 100 / Decimal(total)).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
            if total
            else Decimal(0)
        )
        return progress, completed, total, percent
