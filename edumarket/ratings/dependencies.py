"""FastAPI dependencies for course ratings."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import RatingService


async def get_rating_service(request: Request) -> RatingService:
    """Get rating service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "rating_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rating service not available",
        )
    return app_state.rating_service


# Type alias for dependency injection
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
