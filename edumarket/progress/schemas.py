"""Pydantic schemas for learner progress tracking.

Request and response models for:
- Lecture completion
- Progress queries
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .models import CourseProgress, ProgressOutcome


class MarkLectureCompletedRequest(BaseModel):
    """Request to mark a lecture completed."""

    lecture_id: str = Field(..., min_length=1, max_length=100, description="Lecture ID")


class CourseProgressResponse(BaseModel):
    """Course progress response."""

    course_id: str
    lecture_completed: list[str] = Field(default_factory=list)
    completed_count: int = 0
    total_lectures: int = 0
    progress_percent: Decimal = Field(Decimal(0), description="0-100 percentage")
    updated_at: datetime | None = None

    @classmethod
    def from_entity(
        cls,
        course_id: str,
        entity: CourseProgress | None,
        completed_count: int = 0,
        total_lectures: int = 0,
        progress_percent: Decimal = Decimal(0),
    ) -> "CourseProgressResponse":
        """Create response from entity (None when nothing completed yet)."""
        return cls(
            course_id=course_id,
            lecture_completed=sorted(entity.lecture_completed) if entity else [],
            completed_count=completed_count,
            total_lectures=total_lectures,
            progress_percent=progress_percent,
            updated_at=entity.updated_at if entity else None,
        )


class MarkLectureCompletedResponse(BaseModel):
    """Lecture completion response."""

    result: ProgressOutcome
    course_id: str
    lecture_id: str
    completed_count: int
