"""Stripe payment gateway client.

This client handles:
- Creating hosted checkout sessions for a pending purchase
- Verifying webhook signatures (``Stripe-Signature`` header)
- Translating checkout events into ledger notifications

SECURITY: The secret key and webhook secret are kept server-side and never
exposed to clients.
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import stripe
import structlog

from edumarket.config.settings import Settings
from edumarket.core.exceptions import UpstreamUnavailableError, WebhookSignatureError

from .models import GatewayOutcome


logger = structlog.get_logger(__name__)

# Checkout event type -> ledger outcome; anything else is acknowledged and ignored
EVENT_OUTCOMES: dict[str, GatewayOutcome] = {
    "checkout.session.completed": GatewayOutcome.SUCCESS,
    "checkout.session.async_payment_succeeded": GatewayOutcome.SUCCESS,
    "checkout.session.expired": GatewayOutcome.FAILURE,
    "checkout.session.async_payment_failed": GatewayOutcome.FAILURE,
}

# A completed session with a delayed payment method reports "unpaid" until
# the async_payment_* event arrives
SETTLED_PAYMENT_STATUSES = frozenset({"paid", "no_payment_required"})

PURCHASE_METADATA_KEY = "purchaseId"


@dataclass
class CheckoutSession:
    """Hosted checkout session."""

    session_id: str
    url: str


@dataclass
class GatewayNotification:
    """A payment outcome for a purchase, extracted from a webhook event."""

    event_id: str | None
    event_type: str
    purchase_id: str
    outcome: GatewayOutcome


def to_minor_units(amount: Decimal, minor_unit: Decimal = Decimal("0.01")) -> int:
    """Convert an amount to the gateway's integer minor units (e.g. cents)."""
    return int((amount / minor_unit).to_integral_value())


class StripeGateway:
    """Client for the Stripe API."""

    def __init__(self, settings: Settings) -> None:
        """Initialize gateway with settings.

        Args:
            settings: Application settings containing Stripe configuration.
        """
        self.settings = settings
        self._secret_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._tolerance = settings.stripe_webhook_tolerance_seconds
        self._minor_unit = settings.currency_minor_unit

    @property
    def is_configured(self) -> bool:
        """Check if the Stripe API key is set."""
        return self.settings.stripe_configured

    # ==========================================================================
    # Checkout
    # ==========================================================================

    async def create_checkout_session(
        self,
        purchase_id: str,
        course_title: str,
        amount: Decimal,
        currency: str,
        origin: str,
    ) -> CheckoutSession:
        """Create a hosted checkout session for one course.

        The purchase ID doubles as the idempotency key, so a retried request
        returns the same session instead of opening a second one.

        Raises:
            UpstreamUnavailableError: If Stripe is unreachable or rejects the call
        """
        if not self.is_configured:
            logger.error("stripe_not_configured")
            raise UpstreamUnavailableError("Payment gateway is not configured")

        origin = origin.rstrip("/")
        try:
            session = await stripe.checkout.Session.create_async(
                api_key=self._secret_key,
                idempotency_key=f"checkout-{purchase_id}",
                mode="payment",
                success_url=f"{origin}/loading/my-enrollments",
                cancel_url=f"{origin}/",
                client_reference_id=purchase_id,
                metadata={PURCHASE_METADATA_KEY: purchase_id},
                line_items=[
                    {
                        "quantity": 1,
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": to_minor_units(amount, self._minor_unit),
                            "product_data": {"name": course_title},
                        },
                    }
                ],
            )
        except stripe.APIConnectionError as e:
            logger.error(
                "stripe_connection_error", purchase_id=purchase_id, error=str(e)
            )
            raise UpstreamUnavailableError("Payment gateway unreachable") from e
        except stripe.StripeError as e:
            logger.error(
                "stripe_checkout_failed",
                purchase_id=purchase_id,
                status_code=e.http_status,
                stripe_code=e.code,
                error=str(e),
            )
            raise UpstreamUnavailableError(
                "Payment gateway rejected the checkout"
            ) from e

        return CheckoutSession(session_id=session.id, url=session.url)

    # ==========================================================================
    # Webhooks
    # ==========================================================================

    def verify_webhook_signature(
        self, payload: bytes, signature_header: str | None
    ) -> dict[str, Any]:
        """Verify a webhook delivery and return the decoded event.

        Raises:
            WebhookSignatureError: If the header is missing or malformed, no
                signature matches, or the timestamp is outside the tolerance
        """
        if not self._webhook_secret:
            logger.error("stripe_webhook_secret_not_configured")
            raise UpstreamUnavailableError("Webhook secret is not configured")
        if not signature_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature_header, self._webhook_secret, tolerance=self._tolerance
            )
        except UnicodeDecodeError as e:
            raise WebhookSignatureError("Webhook payload is not UTF-8") from e
        except stripe.SignatureVerificationError as e:
            logger.warning("stripe_webhook_signature_invalid", error=str(e))
            raise WebhookSignatureError(str(e)) from e

        try:
            return json.loads(body)
        except ValueError as e:
            raise WebhookSignatureError("Webhook payload is not valid JSON") from e

    def parse_notification(self, event: dict[str, Any]) -> GatewayNotification | None:
        """Translate a webhook event into a ledger notification.

        Returns None for event types the ledger does not act on, for checkout
        events that carry no purchase ID, and for completed sessions whose
        payment has not settled yet.
        """
        event_type = event.get("type", "")
        outcome = EVENT_OUTCOMES.get(event_type)
        if outcome is None:
            logger.debug("stripe_event_ignored", event_type=event_type)
            return None

        session = (event.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        purchase_id = metadata.get(PURCHASE_METADATA_KEY)
        if not purchase_id:
            logger.warning(
                "stripe_event_without_purchase",
                event_id=event.get("id"),
                event_type=event_type,
            )
            return None

        if event_type == "checkout.session.completed":
            payment_status = session.get("payment_status")
            if payment_status not in SETTLED_PAYMENT_STATUSES:
                logger.info(
                    "stripe_payment_pending",
                    event_id=event.get("id"),
                    purchase_id=purchase_id,
                    payment_status=payment_status,
                )
                return None

        return GatewayNotification(
            event_id=event.get("id"),
            event_type=event_type,
            purchase_id=purchase_id,
            outcome=outcome,
        )
