"""Course rating API endpoints."""

from fastapi import APIRouter

from edumarket.auth.dependencies import CurrentUser

from .dependencies import RatingServiceDep
from .schemas import RateCourseRequest, RatingResponse


router = APIRouter(prefix="/v1/users/me/ratings", tags=["ratings"])


@router.put(
    "/{course_id}",
    response_model=RatingResponse,
    summary="Rate a course",
)
async def rate_course(
    course_id: str,
    data: RateCourseRequest,
    rating_service: RatingServiceDep,
    user: CurrentUser,
) -> RatingResponse:
    """Create or replace the caller's rating of an enrolled course."""
    result = await rating_service.rate(user.user_id, course_id, data.rating)
    return RatingResponse.from_result(result)
