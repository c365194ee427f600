"""Pydantic schemas for course ratings."""

from pydantic import BaseModel, Field, StrictInt

from .service import RatingOutcome, RatingResult


class RateCourseRequest(BaseModel):
    """Rating request; bounds are checked by the service."""

    rating: StrictInt = Field(..., description="Integer from 1 to 5")


class RatingResponse(BaseModel):
    """Rating response."""

    result: RatingOutcome
    course_id: str
    rating: int
    average_rating: int
    rating_count: int

    @classmethod
    def from_result(cls, result: RatingResult) -> "RatingResponse":
        """Create response from service result."""
        return cls(
            result=result.outcome,
            course_id=result.course_id,
            rating=result.rating,
            average_rating=result.average_rating,
            rating_count=result.rating_count,
        )
