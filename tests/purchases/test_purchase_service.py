"""Tests for the purchase ledger service.

Covers:
- Amount computed once at creation
- Exactly-once status transition under redelivered notifications
- Enrollment granted only for completed purchases
- Gateway failure leaving the purchase pending
"""

import asyncio
from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from edumarket.core.exceptions import NotFoundError, UpstreamUnavailableError
from edumarket.courses.models import Course
from edumarket.courses.service import CourseService
from edumarket.enrollments.service import EnrollmentService
from edumarket.purchases.gateway import CheckoutSession, StripeGateway
from edumarket.purchases.models import (
    GatewayOutcome,
    NotificationOutcome,
    PurchaseStatus,
    compute_amount,
)
from edumarket.purchases.service import PurchaseService
from edumarket.users.service import UserService


PURCHASE_COLUMNS = (
    "purchase_id",
    "course_id",
    "user_id",
    "amount",
    "currency",
    "status",
    "created_at",
    "updated_at",
)


@pytest.fixture
def course() -> Course:
    return Course(
        course_id="course_1",
        title="Python 101",
        educator_id="edu_1",
        price=Decimal("100"),
        discount=10,
    )


@pytest.fixture
def course_service(course: Course) -> Mock:
    service = Mock(spec=CourseService)
    service.require_course = AsyncMock(return_value=course)
    return service


@pytest.fixture
def user_service() -> Mock:
    service = Mock(spec=UserService)
    service.get_or_create = AsyncMock(return_value=Mock(user_id="user_1"))
    return service


@pytest.fixture
def enrollment_service() -> Mock:
    service = Mock(spec=EnrollmentService)
    service.enroll = AsyncMock()
    return service


@pytest.fixture
def gateway() -> Mock:
    gateway = Mock(spec=StripeGateway)
    gateway.create_checkout_session = AsyncMock(
        return_value=CheckoutSession(
            session_id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1"
        )
    )
    return gateway


@pytest.fixture
def purchase_service(
    mock_session: Mock,
    course_service: Mock,
    user_service: Mock,
    enrollment_service: Mock,
    gateway: Mock,
) -> PurchaseService:
    """Create PurchaseService with mocked dependencies."""
    return PurchaseService(
        session=mock_session,
        keyspace="test_keyspace",
        course_service=course_service,
        user_service=user_service,
        enrollment_service=enrollment_service,
        gateway=gateway,
    )


@pytest.fixture
def purchase_store(purchase_service: PurchaseService, mock_session: Mock, make_result):
    """Route purchase statements to a dict; ``IF status = ?`` is atomic."""
    purchases: dict[str, dict] = {}

    def as_row(purchase_id: str) -> SimpleNamespace:
        return SimpleNamespace(
            checkout_session_id=None, checkout_url=None, **purchases[purchase_id]
        )

    async def dispatch(stmt, params=None):
        await asyncio.sleep(0)
        if stmt is purchase_service._insert_purchase:
            purchases[params[0]] = dict(zip(PURCHASE_COLUMNS, params, strict=True))
            return make_result()
        if stmt is purchase_service._get_purchase:
            if params[0] not in purchases:
                return make_result([])
            return make_result([as_row(params[0])])
        if stmt is purchase_service._transition_status:
            target, updated_at, purchase_id, expected = params
            current = purchases[purchase_id]["status"]
            if current != expected:
                return make_result([SimpleNamespace(status=current)], was_applied=False)
            purchases[purchase_id].update(status=target, updated_at=updated_at)
            return make_result(was_applied=True)
        return make_result()

    mock_session.aexecute = AsyncMock(side_effect=dispatch)
    return purchases


def seed_pending(purchases: dict, purchase_id: str = "purchase_1") -> None:
    now = datetime(2024, 6, 1, tzinfo=UTC)
    purchases[purchase_id] = {
        "purchase_id": purchase_id,
        "course_id": "course_1",
        "user_id": "user_1",
        "amount": Decimal("90.00"),
        "currency": "USD",
        "status": PurchaseStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    }


class TestComputeAmount:
    """Tests for discount arithmetic."""

    @pytest.mark.parametrize(
        "price,discount,expected",
        [
            ("100", 10, "90.00"),
            ("100", 0, "100.00"),
            ("100", 100, "0.00"),
            ("19.99", 15, "16.99"),
            ("0.05", 50, "0.03"),
        ],
    )
    def test_rounded_half_up(self, price: str, discount: int, expected: str) -> None:
        assert compute_amount(Decimal(price), discount) == Decimal(expected)


class TestCreatePurchase:
    """Tests for PurchaseService.create_purchase."""

    @pytest.mark.asyncio
    async def test_creates_pending_purchase_with_checkout(
        self, purchase_service: PurchaseService, purchase_store, gateway: Mock
    ) -> None:
        purchase = await purchase_service.create_purchase(
            "course_1", "user_1", "https://app.example.com"
        )

        assert purchase.amount == Decimal("90.00")
        assert purchase.status == PurchaseStatus.PENDING.value
        assert purchase.checkout_url == "https://checkout.stripe.com/c/cs_test_1"
        assert purchase_store[purchase.purchase_id]["status"] == "pending"
        gateway.create_checkout_session.assert_awaited_once()
        kwargs = gateway.create_checkout_session.call_args.kwargs
        assert kwargs["amount"] == Decimal("90.00")
        assert kwargs["origin"] == "https://app.example.com"

    @pytest.mark.asyncio
    async def test_amount_fixed_after_price_change(
        self, purchase_service: PurchaseService, purchase_store, course: Course
    ) -> None:
        purchase = await purchase_service.create_purchase(
            "course_1", "user_1", "https://app.example.com"
        )
        course.price = Decimal("500")

        stored = await purchase_service.get_purchase(purchase.purchase_id)

        assert stored.amount == Decimal("90.00")

    @pytest.mark.asyncio
    async def test_gateway_failure_leaves_pending(
        self, purchase_service: PurchaseService, purchase_store, gateway: Mock
    ) -> None:
        gateway.create_checkout_session.side_effect = UpstreamUnavailableError()

        with pytest.raises(UpstreamUnavailableError):
            await purchase_service.create_purchase(
                "course_1", "user_1", "https://app.example.com"
            )

        assert len(purchase_store) == 1
        (stored,) = purchase_store.values()
        assert stored["status"] == PurchaseStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_unknown_course(
        self, purchase_service: PurchaseService, course_service: Mock, mock_session: Mock
    ) -> None:
        course_service.require_course.side_effect = NotFoundError("missing")

        with pytest.raises(NotFoundError):
            await purchase_service.create_purchase("missing", "user_1", "https://x")

        mock_session.aexecute.assert_not_called()


class TestApplyGatewayNotification:
    """Tests for PurchaseService.apply_gateway_notification."""

    @pytest.mark.asyncio
    async def test_success_completes_and_enrolls(
        self,
        purchase_service: PurchaseService,
        purchase_store,
        enrollment_service: Mock,
    ) -> None:
        seed_pending(purchase_store)

        result = await purchase_service.apply_gateway_notification(
            "purchase_1", GatewayOutcome.SUCCESS
        )

        assert result.outcome == NotificationOutcome.APPLIED
        assert result.status == PurchaseStatus.COMPLETED
        assert result.enrolled is True
        assert purchase_store["purchase_1"]["status"] == "completed"
        enrollment_service.enroll.assert_awaited_once_with("user_1", "course_1")

    @pytest.mark.asyncio
    async def test_concurrent_success_deliveries_apply_once(
        self,
        purchase_service: PurchaseService,
        purchase_store,
        enrollment_service: Mock,
    ) -> None:
        seed_pending(purchase_store)

        results = await asyncio.gather(
            *(
                purchase_service.apply_gateway_notification(
                    "purchase_1", GatewayOutcome.SUCCESS
                )
                for _ in range(5)
            )
        )

        outcomes = [r.outcome for r in results]
        assert outcomes.count(NotificationOutcome.APPLIED) == 1
        assert outcomes.count(NotificationOutcome.ALREADY_APPLIED) == 4
        assert {r.status for r in results} == {PurchaseStatus.COMPLETED}
        # Redeliveries re-run the idempotent enroll for the same pair only
        assert {call.args for call in enrollment_service.enroll.await_args_list} == {
            ("user_1", "course_1")
        }

    @pytest.mark.asyncio
    async def test_failure_does_not_enroll(
        self,
        purchase_service: PurchaseService,
        purchase_store,
        enrollment_service: Mock,
    ) -> None:
        seed_pending(purchase_store)

        result = await purchase_service.apply_gateway_notification(
            "purchase_1", GatewayOutcome.FAILURE
        )

        assert result.status == PurchaseStatus.FAILED
        assert result.enrolled is False
        enrollment_service.enroll.assert_not_called()

    @pytest.mark.asyncio
    async def test_terminal_status_never_changes(
        self,
        purchase_service: PurchaseService,
        purchase_store,
        enrollment_service: Mock,
    ) -> None:
        seed_pending(purchase_store)
        await purchase_service.apply_gateway_notification(
            "purchase_1", GatewayOutcome.FAILURE
        )

        result = await purchase_service.apply_gateway_notification(
            "purchase_1", GatewayOutcome.SUCCESS
        )

        assert result.outcome == NotificationOutcome.ALREADY_APPLIED
        assert result.status == PurchaseStatus.FAILED
        assert purchase_store["purchase_1"]["status"] == "failed"
        enrollment_service.enroll.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_purchase(
        self, purchase_service: PurchaseService, purchase_store
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await purchase_service.apply_gateway_notification(
                "nope", GatewayOutcome.SUCCESS
            )

        assert exc_info.value.code == "purchase_not_found"


class TestPurchaseQueries:
    """Tests for purchase listings."""

    @pytest.mark.asyncio
    async def test_completed_for_courses_filters_status(
        self, purchase_service: PurchaseService, mock_session: Mock, make_result
    ) -> None:
        def row(purchase_id: str, status: str, day: int) -> SimpleNamespace:
            return SimpleNamespace(
                purchase_id=purchase_id,
                course_id="course_1",
                user_id="user_1",
                amount=Decimal("10"),
                currency="USD",
                status=status,
                checkout_session_id=None,
                checkout_url=None,
                created_at=datetime(2024, 1, day),
                updated_at=None,
            )

        mock_session.aexecute.side_effect = [
            make_result([SimpleNamespace(purchase_id=p) for p in ("p1", "p2", "p3")]),
            make_result(
                [
                    row("p1", "completed", 1),
                    row("p2", "pending", 2),
                    row("p3", "completed", 3),
                ]
            ),
        ]

        purchases = await purchase_service.list_completed_for_courses(["course_1"])

        assert [p.purchase_id for p in purchases] == ["p3", "p1"]
