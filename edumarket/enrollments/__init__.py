"""Course enrollment module.

Provides:
- Enrollment creation, idempotent and race-safe
- Membership checks with an optional Redis cache
- Per-course and per-user membership views kept consistent
"""

from .models import (
    ENROLLMENTS_TABLES_CQL,
    Enrollment,
    EnrollmentOutcome,
    EnrollmentResult,
)


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "Enrollment",
    "EnrollmentOutcome",
    "EnrollmentResult",
]
