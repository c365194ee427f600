"""Learner progress API endpoints."""

from fastapi import APIRouter

from edumarket.auth.dependencies import CurrentUser

from .dependencies import ProgressServiceDep
from .schemas import (
    CourseProgressResponse,
    MarkLectureCompletedRequest,
    MarkLectureCompletedResponse,
)


router = APIRouter(prefix="/v1/users/me/progress", tags=["progress"])


@router.get(
    "/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Get the caller's completed lectures and completion percentage."""
    progress, completed, total, percent = await progress_service.get_progress_summary(
        user.user_id, course_id
    )
    return CourseProgressResponse.from_entity(
        course_id, progress, completed, total, percent
    )


@router.put(
    "/{course_id}",
    response_model=MarkLectureCompletedResponse,
    summary="Mark lecture completed",
)
async def mark_lecture_completed(
    course_id: str,
    data: MarkLectureCompletedRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> MarkLectureCompletedResponse:
    """Mark a lecture completed. Repeating the call is a no-op."""
    result = await progress_service.mark_completed(
        user.user_id, course_id, data.lecture_id
    )
    return MarkLectureCompletedResponse(
        result=result.outcome,
        course_id=course_id,
        lecture_id=data.lecture_id,
        completed_count=result.progress.completed_count,
    )
