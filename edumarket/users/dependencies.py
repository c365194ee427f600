"""FastAPI dependencies for users."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import UserService


async def get_user_service(request: Request) -> UserService:
    """Get user service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "user_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User service not available",
        )
    return app_state.user_service


# Type alias for dependency injection
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
