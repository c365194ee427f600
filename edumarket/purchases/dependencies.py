"""FastAPI dependencies for the purchase ledger."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .gateway import StripeGateway
from .service import PurchaseService


async def get_purchase_service(request: Request) -> PurchaseService:
    """Get purchase service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "purchase_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Purchase service not available",
        )
    return app_state.purchase_service


async def get_payment_gateway(request: Request) -> StripeGateway:
    """Get the payment gateway client from app state."""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway not available",
        )
    return gateway


# Type aliases for dependency injection
PurchaseServiceDep = Annotated[PurchaseService, Depends(get_purchase_service)]
PaymentGatewayDep = Annotated[StripeGateway, Depends(get_payment_gateway)]
