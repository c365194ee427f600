"""Database models for course enrollments.

Cassandra table definitions for:
- Enrollments: Source of truth, partitioned by course
- Lookup table: Enrollments by user, derived from the source of truth

Architecture: ``enrollments`` decides membership through a lightweight
transaction; ``enrollments_by_user`` is rewritten from the winner's row and is
always repairable from it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class EnrollmentOutcome(str, Enum):
    """Result of an enroll call."""

    ENROLLED = "enrolled"
    ALREADY_ENROLLED = "already_enrolled"


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

# Inscricoes - particionado por course_id
# Para queries: "quais alunos estao neste curso?"
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id TEXT,
    user_id TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup: cursos por usuario - particionado por user_id
# Para queries: "em quais cursos o usuario esta inscrito?"
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id TEXT,
    course_id TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

# All CQL statements for table setup
ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Course enrollment entity.

    Attributes:
        course_id: Course ID
        user_id: User ID
        enrolled_at: Timestamp decided by the winning insert
    """

    def __init__(
        self,
        course_id: str,
        user_id: str,
        enrolled_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            enrolled_at=row.enrolled_at,
        )

    def __repr__(self) -> str:
        return f"<Enrollment user={self.user_id} course={self.course_id}>"


class EnrollmentResult:
    """Outcome of ``EnrollmentService.enroll``."""

    def __init__(self, enrollment: Enrollment, outcome: EnrollmentOutcome):
        self.enrollment = enrollment
        self.outcome = outcome

    @property
    def created(self) -> bool:
        """True when this call created the enrollment."""
        return self.outcome == EnrollmentOutcome.ENROLLED
