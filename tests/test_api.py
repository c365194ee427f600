"""API tests: routing, auth gates, error envelope and webhook handling.

Services on ``app.state`` are replaced with mocks; no database is involved.
"""

import base64
import hashlib
import hmac
import json
import time
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from svix.webhooks import Webhook

from edumarket.config.settings import Settings, get_settings
from edumarket.core.exceptions import InvalidArgumentError, NotEnrolledError, NotFoundError
from edumarket.courses.models import Course
from edumarket.identity.client import IdentityProfile, IdentityProviderClient
from edumarket.main import app
from edumarket.progress.models import CourseProgress, ProgressOutcome, ProgressUpdateResult
from edumarket.purchases.gateway import StripeGateway
from edumarket.purchases.models import NotificationOutcome, NotificationResult, PurchaseStatus


WEBHOOK_SECRET = "whsec_api_test"
IDENTITY_WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"api-identity-secret").decode()
STATE_NAMES = (
    "course_service",
    "enrollment_service",
    "user_service",
    "purchase_service",
    "progress_service",
    "rating_service",
    "dashboard_service",
    "payment_gateway",
    "identity_client",
)


def token_for(user_id: str, role: str | None = None) -> dict[str, str]:
    settings = get_settings()
    claims = {"sub": user_id, "exp": datetime.now(UTC) + timedelta(minutes=5)}
    if role:
        claims[settings.auth_role_claim] = role
    token = jwt.encode(claims, settings.auth_token_key, algorithm=settings.auth_algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def services() -> Iterator[dict[str, Mock]]:
    """Install mock services on app.state for the duration of a test."""
    mocks = {name: Mock() for name in STATE_NAMES}
    mocks["payment_gateway"] = StripeGateway(
        Settings(stripe_secret_key="sk_test", stripe_webhook_secret=WEBHOOK_SECRET)
    )
    mocks["identity_client"] = IdentityProviderClient(
        Settings(identity_webhook_secret=IDENTITY_WEBHOOK_SECRET)
    )
    for name, service in mocks.items():
        setattr(app.state, name, service)
    yield mocks
    for name in STATE_NAMES:
        setattr(app.state, name, None)


@pytest.fixture
def api(services: dict[str, Mock]) -> TestClient:
    return TestClient(app)


class TestAuthGates:
    """Tests for authentication and role checks."""

    def test_missing_token(self, api: TestClient) -> None:
        response = api.get("/v1/users/me")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] is True
        assert "request_id" in body

    def test_invalid_token(self, api: TestClient) -> None:
        response = api.get(
            "/v1/users/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_student_cannot_create_course(self, api: TestClient) -> None:
        response = api.post(
            "/v1/educator/courses",
            json={"title": "Python 101", "price": "10"},
            headers=token_for("user_1"),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "educator_required"

    def test_educator_can_list_courses(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["course_service"].list_by_educator = AsyncMock(
            return_value=[
                Course(
                    course_id="course_1",
                    title="Python 101",
                    educator_id="edu_1",
                    price=Decimal("10"),
                )
            ]
        )
        services["enrollment_service"].list_enrollments_for_courses = AsyncMock(
            return_value=[Mock(course_id="course_1"), Mock(course_id="course_1")]
        )

        response = api.get(
            "/v1/educator/courses", headers=token_for("edu_1", "educator")
        )

        assert response.status_code == 200
        items = response.json()["items"]
        assert items[0]["enrolled_students_count"] == 2


class TestErrorEnvelope:
    """Tests for ledger error mapping."""

    def test_not_enrolled_progress(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["progress_service"].mark_completed = AsyncMock(
            side_effect=NotEnrolledError()
        )

        response = api.put(
            "/v1/users/me/progress/course_1",
            json={"lecture_id": "l1"},
            headers=token_for("user_1"),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "not_enrolled"

    def test_invalid_rating(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["rating_service"].rate = AsyncMock(
            side_effect=InvalidArgumentError("Rating out of range", "invalid_rating")
        )

        response = api.put(
            "/v1/users/me/ratings/course_1",
            json={"rating": 6},
            headers=token_for("user_1"),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_rating"

    def test_non_integer_rating_fails_validation(self, api: TestClient) -> None:
        response = api.put(
            "/v1/users/me/ratings/course_1",
            json={"rating": "5"},
            headers=token_for("user_1"),
        )

        assert response.status_code == 422
        assert response.json()["details"]

    def test_unpublished_course_is_not_found(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["course_service"].require_course = AsyncMock(
            return_value=Course(
                course_id="draft", title="Draft", educator_id="edu_1", is_published=False
            )
        )

        response = api.get("/v1/courses/draft")

        assert response.status_code == 404
        assert response.json()["code"] == "course_not_found"

    def test_service_unavailable(self, client: TestClient) -> None:
        response = client.get("/v1/courses")
        assert response.status_code == 503

    def test_mark_completed(self, api: TestClient, services: dict[str, Mock]) -> None:
        progress = CourseProgress("user_1", "course_1", {"l1", "l2"})
        services["progress_service"].mark_completed = AsyncMock(
            return_value=ProgressUpdateResult(progress, ProgressOutcome.COMPLETED)
        )

        response = api.put(
            "/v1/users/me/progress/course_1",
            json={"lecture_id": "l2"},
            headers=token_for("user_1"),
        )

        assert response.status_code == 200
        assert response.json() == {
            "result": "completed",
            "course_id": "course_1",
            "lecture_id": "l2",
            "completed_count": 2,
        }


class TestStripeWebhook:
    """Tests for the webhook endpoint."""

    @staticmethod
    def post_event(api: TestClient, event: dict, secret: str = WEBHOOK_SECRET):
        payload = json.dumps(event).encode()
        timestamp = int(time.time())
        digest = hmac.new(
            secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256
        ).hexdigest()
        return api.post(
            "/v1/webhooks/stripe",
            content=payload,
            headers={
                "Stripe-Signature": f"t={timestamp},v1={digest}",
                "Content-Type": "application/json",
            },
        )

    @staticmethod
    def completed_event(purchase_id: str = "purchase_1") -> dict:
        return {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "payment_status": "paid",
                    "metadata": {"purchaseId": purchase_id},
                }
            },
        }

    def test_applies_notification(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["purchase_service"].apply_gateway_notification = AsyncMock(
            return_value=NotificationResult(
                "purchase_1",
                NotificationOutcome.APPLIED,
                PurchaseStatus.COMPLETED,
                enrolled=True,
            )
        )

        response = self.post_event(api, self.completed_event())

        assert response.status_code == 200
        assert response.json() == {
            "received": True,
            "result": "applied",
            "purchase_id": "purchase_1",
            "status": "completed",
        }

    def test_bad_signature(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["purchase_service"].apply_gateway_notification = AsyncMock()

        response = self.post_event(api, self.completed_event(), secret="whsec_other")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"
        services["purchase_service"].apply_gateway_notification.assert_not_called()

    def test_unknown_purchase_acknowledged(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["purchase_service"].apply_gateway_notification = AsyncMock(
            side_effect=NotFoundError("missing", "purchase_not_found")
        )

        response = self.post_event(api, self.completed_event("ghost"))

        assert response.status_code == 200
        assert response.json()["result"] == "unknown_purchase"

    def test_unpaid_checkout_waits_for_async_payment(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["purchase_service"].apply_gateway_notification = AsyncMock()
        event = self.completed_event()
        event["data"]["object"]["payment_status"] = "unpaid"

        response = self.post_event(api, event)

        assert response.status_code == 200
        assert response.json()["result"] == "ignored"
        services["purchase_service"].apply_gateway_notification.assert_not_called()

    def test_ignored_event(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["purchase_service"].apply_gateway_notification = AsyncMock()

        response = self.post_event(api, {"id": "evt_2", "type": "charge.refunded"})

        assert response.status_code == 200
        assert response.json()["result"] == "ignored"
        services["purchase_service"].apply_gateway_notification.assert_not_called()


class TestEducatorCourseEdits:
    """Tests for course update and delete routes."""

    def test_update_course(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["course_service"].update_course = AsyncMock(
            return_value=Course(
                course_id="course_1",
                title="Python 102",
                educator_id="edu_1",
                price=Decimal("10"),
            )
        )

        response = api.patch(
            "/v1/educator/courses/course_1",
            json={"title": "Python 102"},
            headers=token_for("edu_1", "educator"),
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Python 102"
        _, educator_id, data = services["course_service"].update_course.await_args.args
        assert educator_id == "edu_1"
        assert data.model_dump(exclude_unset=True) == {"title": "Python 102"}

    def test_delete_course(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["course_service"].delete_course = AsyncMock(return_value=None)

        response = api.delete(
            "/v1/educator/courses/course_1", headers=token_for("edu_1", "educator")
        )

        assert response.status_code == 204
        services["course_service"].delete_course.assert_awaited_once_with(
            "course_1", "edu_1"
        )

    def test_student_cannot_delete(self, api: TestClient) -> None:
        response = api.delete(
            "/v1/educator/courses/course_1", headers=token_for("user_1")
        )
        assert response.status_code == 403


class TestIdentityWebhook:
    """Tests for the identity provider webhook endpoint."""

    @staticmethod
    def post_event(
        api: TestClient, event: dict, secret: str = IDENTITY_WEBHOOK_SECRET
    ):
        payload = json.dumps(event)
        now = datetime.now(UTC)
        return api.post(
            "/v1/webhooks/identity",
            content=payload,
            headers={
                "svix-id": "msg_1",
                "svix-timestamp": str(int(now.timestamp())),
                "svix-signature": Webhook(secret).sign("msg_1", now, payload),
                "Content-Type": "application/json",
            },
        )

    def test_user_updated_syncs_profile(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["user_service"].sync_profile = AsyncMock()
        event = {
            "type": "user.updated",
            "data": {
                "id": "user_1",
                "first_name": "Ana",
                "last_name": "Lima",
                "image_url": "https://img/new",
                "email_addresses": [],
            },
        }

        response = self.post_event(api, event)

        assert response.status_code == 200
        assert response.json() == {
            "received": True,
            "result": "synced",
            "user_id": "user_1",
        }
        profile = services["user_service"].sync_profile.await_args.args[0]
        assert isinstance(profile, IdentityProfile)
        assert profile.name == "Ana Lima"
        assert profile.image_url == "https://img/new"

    def test_user_deleted_removes_cache_row(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        services["user_service"].remove_user = AsyncMock()

        response = self.post_event(
            api, {"type": "user.deleted", "data": {"id": "user_1", "deleted": True}}
        )

        assert response.status_code == 200
        assert response.json()["result"] == "removed"
        services["user_service"].remove_user.assert_awaited_once_with("user_1")

    def test_bad_signature(self, api: TestClient, services: dict[str, Mock]) -> None:
        services["user_service"].sync_profile = AsyncMock()
        other = "whsec_" + base64.b64encode(b"not-the-secret").decode()

        response = self.post_event(
            api, {"type": "user.created", "data": {"id": "user_1"}}, secret=other
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"
        services["user_service"].sync_profile.assert_not_called()

    def test_other_event_ignored(
        self, api: TestClient, services: dict[str, Mock]
    ) -> None:
        response = self.post_event(
            api, {"type": "session.created", "data": {"id": "sess_1"}}
        )

        assert response.status_code == 200
        assert response.json()["result"] == "ignored"
