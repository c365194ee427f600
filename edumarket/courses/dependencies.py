"""FastAPI dependencies for the course catalogue."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from edumarket.courses.service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state.

    Args:
        request: FastAPI request

    Returns:
        CourseService instance
    """
    app_state = request.app.state
    if not getattr(app_state, "course_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return app_state.course_service


# Type alias for dependency injection
CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
