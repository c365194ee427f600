"""Learner progress tracking module.

Provides:
- Lecture completion for enrolled learners (idempotent, add-to-set)
- Course progress queries and completion percentage
"""

from .models import (
    PROGRESS_TABLES_CQL,
    CourseProgress,
    ProgressOutcome,
    ProgressUpdateResult,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseProgress",
    "ProgressOutcome",
    "ProgressUpdateResult",
]
