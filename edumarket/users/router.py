"""User API endpoints.

Provides routes for:
- Current user profile (materialized on first access)
- Enrolled courses with full course payloads
- Becoming an educator
- Identity provider webhooks keeping the user cache in sync
"""

from fastapi import APIRouter, Request

from edumarket.auth.dependencies import CurrentUser
from edumarket.auth.permissions import UserRole
from edumarket.core.logging import get_logger
from edumarket.courses.dependencies import CourseServiceDep
from edumarket.courses.schemas import CourseListResponse, CourseResponse
from edumarket.enrollments.dependencies import EnrollmentServiceDep
from edumarket.identity.client import (
    USER_DELETED_EVENT,
    USER_UPSERT_EVENTS,
    IdentityProfile,
)
from edumarket.identity.dependencies import IdentityClientDep

from .dependencies import UserServiceDep
from .schemas import IdentityWebhookAckResponse, RoleUpdateResponse, UserResponse


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/users", tags=["users"])
role_router = APIRouter(prefix="/v1/educator", tags=["educator"])
identity_webhooks_router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


@router.get("/me", response_model=UserResponse, summary="Get my profile")
async def get_me(
    user_service: UserServiceDep,
    user: CurrentUser,
) -> UserResponse:
    """Get the caller's profile, creating the local record on first access."""
    entity = await user_service.get_or_create(user.user_id)
    return UserResponse.from_entity(entity)


@router.get(
    "/me/enrollments",
    response_model=CourseListResponse,
    summary="List my enrolled courses",
)
async def list_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> CourseListResponse:
    """Enrolled courses in enrollment order, lecture URLs included."""
    course_ids = await enrollment_service.list_user_courses(user.user_id)
    courses = await course_service.get_courses(course_ids)
    items = [CourseResponse.from_entity(course) for course in courses]
    return CourseListResponse(items=items, total=len(items))


@role_router.post(
    "/role", response_model=RoleUpdateResponse, summary="Become an educator"
)
async def update_role_to_educator(
    user_service: UserServiceDep,
    user: CurrentUser,
) -> RoleUpdateResponse:
    """Grant the educator role. New tokens carry the role claim."""
    await user_service.update_role_to_educator(user.user_id)
    return RoleUpdateResponse(
        role=UserRole.EDUCATOR, message="You can publish a course now"
    )


@identity_webhooks_router.post(
    "/identity",
    response_model=IdentityWebhookAckResponse,
    summary="Identity provider webhook",
)
async def identity_webhook(
    request: Request,
    identity_client: IdentityClientDep,
    user_service: UserServiceDep,
) -> IdentityWebhookAckResponse:
    """Verify a user lifecycle event and mirror it into the user cache."""
    event = identity_client.verify_webhook(await request.body(), request.headers)
    event_type = event.get("type")
    data = event.get("data") or {}
    user_id = data.get("id")

    if not user_id:
        logger.warning("identity_webhook_without_user", event_type=event_type)
        return IdentityWebhookAckResponse(result="ignored")

    if event_type in USER_UPSERT_EVENTS:
        await user_service.sync_profile(IdentityProfile.from_api(data))
        return IdentityWebhookAckResponse(result="synced", user_id=user_id)

    if event_type == USER_DELETED_EVENT:
        await user_service.remove_user(user_id)
        return IdentityWebhookAckResponse(result="removed", user_id=user_id)

    logger.debug("identity_webhook_ignored", event_type=event_type)
    return IdentityWebhookAckResponse(result="ignored", user_id=user_id)
