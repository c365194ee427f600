"""Course catalogue API endpoints.

Provides routes for:
- Public catalogue and course detail (non-preview lecture URLs hidden)
- Educator course management: create, list own, get own, update, delete
"""

from fastapi import APIRouter, Query, Response, status

from edumarket.auth.dependencies import EducatorUser
from edumarket.core.exceptions import NotFoundError
from edumarket.enrollments.dependencies import EnrollmentServiceDep

from .dependencies import CourseServiceDep
from .schemas import (
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    UpdateCourseRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])
educator_router = APIRouter(prefix="/v1/educator/courses", tags=["educator"])


# ==============================================================================
# Public Catalogue
# ==============================================================================


@router.get("", response_model=CourseListResponse, summary="List published courses")
async def list_courses(
    course_service: CourseServiceDep,
    locale: str = Query("en", max_length=5, description="Duration label locale"),
) -> CourseListResponse:
    """List published courses, newest first."""
    courses = await course_service.list_published()
    items = [
        CourseResponse.from_entity(course, hide_locked_lectures=True, locale=locale)
        for course in courses
    ]
    return CourseListResponse(items=items, total=len(items))


@router.get(
    "/{course_id}", response_model=CourseResponse, summary="Get course details"
)
async def get_course(
    course_id: str,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    locale: str = Query("en", max_length=5, description="Duration label locale"),
) -> CourseResponse:
    """Get a published course with derived aggregates."""
    course = await course_service.require_course(course_id)
    if not course.is_published:
        raise NotFoundError(f"Course {course_id} not found", "course_not_found")

    students = await enrollment_service.list_course_students(course_id)
    return CourseResponse.from_entity(
        course,
        enrolled_students_count=len(students),
        hide_locked_lectures=True,
        locale=locale,
    )


# ==============================================================================
# Educator Course Management
# ==============================================================================


@educator_router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: EducatorUser,
) -> CourseResponse:
    """Create a course; chapter and lecture orders are renumbered 1..n."""
    course = await course_service.create_course(user.user_id, data)
    return CourseResponse.from_entity(course)


@educator_router.get(
    "", response_model=CourseListResponse, summary="List my courses"
)
async def list_my_courses(
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: EducatorUser,
) -> CourseListResponse:
    """List the educator's courses with student counts."""
    courses = await course_service.list_by_educator(user.user_id)
    memberships = await enrollment_service.list_enrollments_for_courses(
        [course.course_id for course in courses]
    )
    counts: dict[str, int] = {}
    for membership in memberships:
        counts[membership.course_id] = counts.get(membership.course_id, 0) + 1

    items = [
        CourseResponse.from_entity(
            course, enrolled_students_count=counts.get(course.course_id, 0)
        )
        for course in courses
    ]
    return CourseListResponse(items=items, total=len(items))


@educator_router.get(
    "/{course_id}", response_model=CourseResponse, summary="Get my course"
)
async def get_my_course(
    course_id: str,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: EducatorUser,
) -> CourseResponse:
    """Get one of the educator's courses, lecture URLs included."""
    course = await course_service.get_educator_course(course_id, user.user_id)
    students = await enrollment_service.list_course_students(course_id)
    return CourseResponse.from_entity(course, enrolled_students_count=len(students))


@educator_router.patch(
    "/{course_id}", response_model=CourseResponse, summary="Update course"
)
async def update_course(
    course_id: str,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: EducatorUser,
) -> CourseResponse:
    """Edit title, description, pricing or content of an own course.

    Existing purchases keep their amount; new content is renumbered 1..n.
    """
    course = await course_service.update_course(course_id, user.user_id, data)
    return CourseResponse.from_entity(course)


@educator_router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course_id: str,
    course_service: CourseServiceDep,
    user: EducatorUser,
) -> Response:
    """Delete an own course. Purchases and progress are kept."""
    await course_service.delete_course(course_id, user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
