"""Pydantic schemas for the purchase ledger."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .models import NotificationOutcome, Purchase, PurchaseStatus


class CreatePurchaseRequest(BaseModel):
    """Checkout request for one course."""

    course_id: str = Field(..., min_length=1, max_length=100, description="Course ID")


class PurchaseResponse(BaseModel):
    """Purchase response."""

    purchase_id: str
    course_id: str
    amount: Decimal
    currency: str
    status: PurchaseStatus
    checkout_url: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Purchase) -> "PurchaseResponse":
        """Create response from entity."""
        return cls(
            purchase_id=entity.purchase_id,
            course_id=entity.course_id,
            amount=entity.amount,
            currency=entity.currency,
            status=PurchaseStatus(entity.status),
            checkout_url=entity.checkout_url,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class PurchaseListResponse(BaseModel):
    """Purchase history response."""

    items: list[PurchaseResponse]
    total: int


class WebhookAckResponse(BaseModel):
    """Webhook acknowledgement.

    ``result`` is ``ignored`` for events the ledger does not act on and
    ``unknown_purchase`` when the referenced purchase does not exist.
    """

    received: bool = True
    result: NotificationOutcome | str
    purchase_id: str | None = None
    status: PurchaseStatus | None = None
