# ruff: noqa: S608
"""Purchase ledger service layer.

Business logic for:
- Creating a pending purchase and its hosted checkout session
- Applying gateway notifications exactly once (conditional status flip)
- Granting the enrollment for a completed purchase
- Purchase history and per-course completed purchases
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from edumarket.core.database.conditional import execute_conditional
from edumarket.core.exceptions import NotFoundError, UpstreamUnavailableError
from edumarket.courses.service import CourseService
from edumarket.enrollments.service import EnrollmentService
from edumarket.users.service import UserService

from .gateway import StripeGateway
from .models import (
    GatewayOutcome,
    NotificationOutcome,
    NotificationResult,
    Purchase,
    PurchaseStatus,
    compute_amount,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class PurchaseService:
    """Service for the purchase ledger."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
        user_service: UserService,
        enrollment_service: EnrollmentService,
        gateway: StripeGateway,
        currency: str = "USD",
        minor_unit: Decimal = Decimal("0.01"),
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.user_service = user_service
        self.enrollment_service = enrollment_service
        self.gateway = gateway
        self.currency = currency
        self.minor_unit = minor_unit
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Purchases
        self._get_purchase = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.purchases WHERE purchase_id = ?"
        )

        self._get_purchases_in = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.purchases WHERE purchase_id IN ?"
        )

        self._insert_purchase = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases
            (purchase_id, course_id, user_id, amount, currency, status,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._set_checkout = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET checkout_session_id = ?, checkout_url = ?
            WHERE purchase_id = ?
        """)

        # Status only moves out of pending, once
        self._transition_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET status = ?, updated_at = ?
            WHERE purchase_id = ?
            IF status = ?
        """)

        # Lookups
        self._insert_purchase_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases_by_course
            (course_id, purchase_id, user_id, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._insert_purchase_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases_by_user
            (user_id, purchase_id, course_id, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_purchase_ids_by_courses = self.session.prepare(f"""
            SELECT purchase_id FROM {self.keyspace}.purchases_by_course
            WHERE course_id IN ?
        """)

        self._get_purchase_ids_by_user = self.session.prepare(f"""
            SELECT purchase_id FROM {self.keyspace}.purchases_by_user
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Purchase Creation
    # ==========================================================================

    async def create_purchase(
        self, course_id: str, user_id: str, origin: str
    ) -> Purchase:
        """Create a pending purchase and start a checkout session.

        The amount is computed here, once; later price changes never touch it.

        Raises:
            NotFoundError: If the course or user cannot be resolved
            UpstreamUnavailableError: If the gateway fails; the purchase is
                left pending
        """
        course = await self.course_service.require_course(course_id)
        await self.user_service.get_or_create(user_id)

        now = datetime.now(UTC)
        purchase = Purchase(
            purchase_id=str(uuid4()),
            course_id=course_id,
            user_id=user_id,
            amount=compute_amount(course.price, course.discount, self.minor_unit),
            currency=self.currency,
            status=PurchaseStatus.PENDING.value,
            created_at=now,
        )

        # Lookups first so every purchase row is reachable from them
        await self.session.aexecute(
            self._insert_purchase_by_course,
            [course_id, purchase.purchase_id, user_id, now],
        )
        await self.session.aexecute(
            self._insert_purchase_by_user,
            [user_id, purchase.purchase_id, course_id, now],
        )
        await self.session.aexecute(
            self._insert_purchase,
            [
                purchase.purchase_id,
                purchase.course_id,
                purchase.user_id,
                purchase.amount,
                purchase.currency,
                purchase.status,
                purchase.created_at,
                purchase.updated_at,
            ],
        )

        logger.info(
            "purchase_created",
            purchase_id=purchase.purchase_id,
            course_id=course_id,
            user_id=user_id,
            amount=str(purchase.amount),
            currency=purchase.currency,
        )

        try:
            checkout = await self.gateway.create_checkout_session(
                purchase_id=purchase.purchase_id,
                course_title=course.title,
                amount=purchase.amount,
                currency=purchase.currency,
                origin=origin,
            )
        except UpstreamUnavailableError:
            logger.warning(
                "checkout_session_failed", purchase_id=purchase.purchase_id
            )
            raise

        await self.session.aexecute(
            self._set_checkout,
            [checkout.session_id, checkout.url, purchase.purchase_id],
        )
        purchase.checkout_session_id = checkout.session_id
        purchase.checkout_url = checkout.url

        return purchase

    # ==========================================================================
    # Gateway Notifications
    # ==========================================================================

    async def apply_gateway_notification(
        self, purchase_id: str, outcome: GatewayOutcome
    ) -> NotificationResult:
        """Apply a payment outcome to a purchase.

        Only the delivery that moves the purchase out of ``pending`` changes
        its status. A repeated success for a completed purchase re-runs the
        idempotent enroll, which repairs an enrollment that was interrupted
        after the status flip.

        Raises:
            NotFoundError: If the purchase does not exist
            ConflictError: If the conditional update timed out undecided
        """
        purchase = await self.get_purchase(purchase_id)
        if purchase is None:
            logger.warning(
                "notification_for_unknown_purchase",
                purchase_id=purchase_id,
                outcome=outcome.value,
            )
            raise NotFoundError(
                f"Purchase {purchase_id} not found", "purchase_not_found"
            )

        target = (
            PurchaseStatus.COMPLETED
            if outcome == GatewayOutcome.SUCCESS
            else PurchaseStatus.FAILED
        )
        result = await execute_conditional(
            self.session,
            self._transition_status,
            [target.value, datetime.now(UTC), purchase_id, PurchaseStatus.PENDING.value],
        )

        if result.was_applied:
            enrolled = False
            if target == PurchaseStatus.COMPLETED:
                await self.enrollment_service.enroll(purchase.user_id, purchase.course_id)
                enrolled = True
            logger.info(
                "purchase_status_changed",
                purchase_id=purchase_id,
                status=target.value,
                enrolled=enrolled,
            )
            return NotificationResult(
                purchase_id, NotificationOutcome.APPLIED, target, enrolled
            )

        # LWT returns the current status when the condition fails
        current_row = result.one()
        current = PurchaseStatus(
            getattr(current_row, "status", None) or purchase.status
        )

        enrolled = False
        if current == PurchaseStatus.COMPLETED and outcome == GatewayOutcome.SUCCESS:
            await self.enrollment_service.enroll(purchase.user_id, purchase.course_id)
            enrolled = True
        elif current.value != target.value:
            logger.warning(
                "notification_conflicts_with_terminal_status",
                purchase_id=purchase_id,
                status=current.value,
                outcome=outcome.value,
            )

        logger.info(
            "notification_already_applied",
            purchase_id=purchase_id,
            status=current.value,
        )
        return NotificationResult(
            purchase_id, NotificationOutcome.ALREADY_APPLIED, current, enrolled
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_purchase(self, purchase_id: str) -> Purchase | None:
        """Get purchase by ID."""
        result = await self.session.aexecute(self._get_purchase, [purchase_id])
        row = result.one()
        return Purchase.from_row(row) if row else None

    async def _get_purchases(self, purchase_ids: list[str]) -> list[Purchase]:
        if not purchase_ids:
            return []
        rows = await self.session.aexecute(self._get_purchases_in, [purchase_ids])
        return [Purchase.from_row(row) for row in rows]

    async def list_user_purchases(self, user_id: str) -> list[Purchase]:
        """A user's purchases, newest first."""
        rows = await self.session.aexecute(self._get_purchase_ids_by_user, [user_id])
        purchases = await self._get_purchases([row.purchase_id for row in rows])
        return sorted(purchases, key=lambda p: p.created_at, reverse=True)

    async def list_completed_for_courses(self, course_ids: list[str]) -> list[Purchase]:
        """Completed purchases across several courses, newest first."""
        if not course_ids:
            return []
        rows = await self.session.aexecute(
            self._get_purchase_ids_by_courses, [list(course_ids)]
        )
        purchases = await self._get_purchases([row.purchase_id for row in rows])
        completed = [p for p in purchases if p.is_completed]
        return sorted(completed, key=lambda p: p.created_at, reverse=True)
