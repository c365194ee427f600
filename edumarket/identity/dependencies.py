"""FastAPI dependencies for the identity provider client."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .client import IdentityProviderClient


async def get_identity_client(request: Request) -> IdentityProviderClient:
    """Get identity provider client from app state."""
    app_state = request.app.state
    if not getattr(app_state, "identity_client", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider client not available",
        )
    return app_state.identity_client


# Type alias for dependency injection
IdentityClientDep = Annotated[IdentityProviderClient, Depends(get_identity_client)]
