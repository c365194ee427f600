"""Database models for learner progress tracking.

Cassandra table definitions for:
- Course progress: Set of completed lecture IDs per (user, course)

Architecture: completion is an add-to-set write, so concurrent "mark
completed" calls for the same learner never lose each other's lectures and
the set only grows.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ProgressOutcome(str, Enum):
    """Result of marking a lecture completed."""

    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"


# ==============================================================================
# Helper Functions
# ==============================================================================


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

# Progresso por usuario e curso
# Partition key: (user_id, course_id) - uma linha por par
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id TEXT,
    course_id TEXT,
    lecture_completed SET<TEXT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id))
)
"""

# All CQL statements for table setup
PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class CourseProgress:
    """Course progress entity for a specific user.

    Attributes:
        user_id: User ID
        course_id: Course ID
        lecture_completed: IDs of completed lectures
        created_at: First completion timestamp
        updated_at: Last completion timestamp
    """

    def __init__(
        self,
        user_id: str,
        course_id: str,
        lecture_completed: set[str] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lecture_completed = set(lecture_completed or ())
        self.created_at = ensure_utc_aware(created_at)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def completed_count(self) -> int:
        """Number of distinct completed lectures."""
        return len(self.lecture_completed)

    def is_lecture_completed(self, lecture_id: str) -> bool:
        """Check if a lecture is completed."""
        return lecture_id in self.lecture_completed

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgress":
        """Create CourseProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lecture_completed=set(row.lecture_completed or ()),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<CourseProgress user={self.user_id} course={self.course_id} "
            f"{self.completed_count} completed>"
        )


class ProgressUpdateResult:
    """Outcome of ``ProgressService.mark_completed``."""

    def __init__(self, progress: CourseProgress, outcome: ProgressOutcome):
        self.progress = progress
        self.outcome = outcome
