"""Pydantic schemas for the educator dashboard."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from .service import DashboardData, EnrolledStudentRow


class StudentSchema(BaseModel):
    """Student reference."""

    user_id: str
    name: str | None = None
    image_url: str | None = None


class EnrolledStudentResponse(BaseModel):
    """Enrolled student row."""

    course_id: str
    course_title: str
    student: StudentSchema
    purchase_date: datetime | None = None

    @classmethod
    def from_row(cls, row: EnrolledStudentRow) -> "EnrolledStudentResponse":
        """Create response from a dashboard row."""
        return cls(
            course_id=row.course_id,
            course_title=row.course_title,
            student=StudentSchema(
                user_id=row.student.user_id,
                name=row.student.name,
                image_url=row.student.image_url,
            ),
            purchase_date=row.purchase_date,
        )


class DashboardResponse(BaseModel):
    """Educator dashboard response."""

    total_earnings: Decimal
    total_courses: int
    enrolled_students_data: list[EnrolledStudentResponse]

    @classmethod
    def from_data(cls, data: DashboardData) -> "DashboardResponse":
        """Create response from dashboard data."""
        return cls(
            total_earnings=data.total_earnings,
            total_courses=data.total_courses,
            enrolled_students_data=[
                EnrolledStudentResponse.from_row(row)
                for row in data.enrolled_students_data
            ],
        )


class EnrolledStudentListResponse(BaseModel):
    """Enrolled students with purchase date."""

    items: list[EnrolledStudentResponse]
    total: int
