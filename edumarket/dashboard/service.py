"""Educator dashboard service.

Read-only rollups over an educator's courses:
- Total earnings from completed purchases
- Course count
- Enrolled students, one row per (student, course) membership
- Enrolled students with purchase date, one row per completed purchase
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import structlog

from edumarket.courses.service import CourseService
from edumarket.enrollments.service import EnrollmentService
from edumarket.purchases.service import PurchaseService
from edumarket.users.models import User
from edumarket.users.service import UserService


logger = structlog.get_logger(__name__)


@dataclass
class StudentRef:
    """Minimal student profile shown to educators."""

    user_id: str
    name: str | None = None
    image_url: str | None = None

    @classmethod
    def from_user(cls, user_id: str, user: User | None) -> "StudentRef":
        if user is None:
            return cls(user_id=user_id)
        return cls(user_id=user_id, name=user.name, image_url=user.image_url)


@dataclass
class EnrolledStudentRow:
    """A student enrolled in one of the educator's courses."""

    course_id: str
    course_title: str
    student: StudentRef
    purchase_date: datetime | None = None


@dataclass
class DashboardData:
    """Educator dashboard rollup."""

    total_earnings: Decimal
    total_courses: int
    enrolled_students_data: list[EnrolledStudentRow] = field(default_factory=list)


class DashboardService:
    """Service for educator dashboards."""

    def __init__(
        self,
        course_service: CourseService,
        enrollment_service: EnrollmentService,
        purchase_service: PurchaseService,
        user_service: UserService,
    ):
        self.course_service = course_service
        self.enrollment_service = enrollment_service
        self.purchase_service = purchase_service
        self.user_service = user_service

    async def educator_dashboard(self, educator_id: str) -> DashboardData:
        """Earnings, course count and enrolled students for an educator.

        Earnings sum the amount of completed purchases only; pending and
        failed purchases are ignored. Students enrolled in several of the
        educator's courses appear once per course.
        """
        courses = await self.course_service.list_by_educator(educator_id)
        course_ids = [course.course_id for course in courses]
        titles = {course.course_id: course.title for course in courses}

        completed = await self.purchase_service.list_completed_for_courses(course_ids)
        total_earnings = sum((p.amount for p in completed), Decimal(0))

        memberships = await self.enrollment_service.list_enrollments_for_courses(
            course_ids
        )
        memberships.sort(key=lambda enrollment: enrollment.enrolled_at)
        users = await self.user_service.get_users([m.user_id for m in memberships])

        rows = [
            EnrolledStudentRow(
                course_id=m.course_id,
                course_title=titles.get(m.course_id, ""),
                student=StudentRef.from_user(m.user_id, users.get(m.user_id)),
            )
            for m in memberships
        ]

        logger.debug(
            "educator_dashboard_built",
            educator_id=educator_id,
            total_courses=len(courses),
            completed_purchases=len(completed),
            memberships=len(rows),
        )
        return DashboardData(
            total_earnings=total_earnings,
            total_courses=len(courses),
            enrolled_students_data=rows,
        )

    async def enrolled_students(self, educator_id: str) -> list[EnrolledStudentRow]:
        """Students with their purchase date, one row per completed purchase."""
        courses = await self.course_service.list_by_educator(educator_id)
        titles = {course.course_id: course.title for course in courses}

        completed = await self.purchase_service.list_completed_for_courses(
            list(titles)
        )
        users = await self.user_service.get_users([p.user_id for p in completed])

        return [
            EnrolledStudentRow(
                course_id=p.course_id,
                course_title=titles.get(p.course_id, ""),
                student=StudentRef.from_user(p.user_id, users.get(p.user_id)),
                purchase_date=p.created_at,
            )
            for p in completed
        ]
