"""Purchase API endpoints.

Provides routes for:
- Starting a checkout for a course
- Purchase history
- Stripe webhook deliveries
"""

from fastapi import APIRouter, Request, status

from edumarket.auth.dependencies import CurrentUser
from edumarket.config import get_settings
from edumarket.core.exceptions import NotFoundError
from edumarket.core.logging import get_logger

from .dependencies import PaymentGatewayDep, PurchaseServiceDep
from .schemas import (
    CreatePurchaseRequest,
    PurchaseListResponse,
    PurchaseResponse,
    WebhookAckResponse,
)


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/users/me/purchases", tags=["purchases"])
webhooks_router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


@router.post(
    "",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start checkout for a course",
)
async def create_purchase(
    data: CreatePurchaseRequest,
    request: Request,
    purchase_service: PurchaseServiceDep,
    user: CurrentUser,
) -> PurchaseResponse:
    """Create a pending purchase and return the hosted checkout URL.

    Redirect URLs are built from the request's ``Origin`` header, falling back
    to the configured frontend URL.
    """
    origin = request.headers.get("origin") or get_settings().frontend_url
    purchase = await purchase_service.create_purchase(
        course_id=data.course_id, user_id=user.user_id, origin=origin
    )
    return PurchaseResponse.from_entity(purchase)


@router.get(
    "",
    response_model=PurchaseListResponse,
    summary="List my purchases",
)
async def list_purchases(
    purchase_service: PurchaseServiceDep,
    user: CurrentUser,
) -> PurchaseListResponse:
    """List the caller's purchases, newest first."""
    purchases = await purchase_service.list_user_purchases(user.user_id)
    return PurchaseListResponse(
        items=[PurchaseResponse.from_entity(p) for p in purchases],
        total=len(purchases),
    )


@webhooks_router.post(
    "/stripe",
    response_model=WebhookAckResponse,
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    gateway: PaymentGatewayDep,
    purchase_service: PurchaseServiceDep,
) -> WebhookAckResponse:
    """Verify and apply a Stripe event.

    Unknown purchases are acknowledged so the gateway stops redelivering;
    storage errors propagate as 5xx so it retries.
    """
    payload = await request.body()
    event = gateway.verify_webhook_signature(
        payload, request.headers.get("stripe-signature")
    )

    notification = gateway.parse_notification(event)
    if notification is None:
        return WebhookAckResponse(result="ignored")

    try:
        result = await purchase_service.apply_gateway_notification(
            notification.purchase_id, notification.outcome
        )
    except NotFoundError:
        logger.warning(
            "stripe_webhook_unknown_purchase",
            event_id=notification.event_id,
            purchase_id=notification.purchase_id,
        )
        return WebhookAckResponse(
            result="unknown_purchase", purchase_id=notification.purchase_id
        )

    return WebhookAckResponse(
        result=result.outcome,
        purchase_id=result.purchase_id,
        status=result.status,
    )
