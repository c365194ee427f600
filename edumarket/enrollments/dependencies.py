"""FastAPI dependencies for enrollments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import EnrollmentService


async def get_enrollment_service(request: Request) -> EnrollmentService:
    """Get enrollment service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "enrollment_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return app_state.enrollment_service


# Type alias for dependency injection
EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
