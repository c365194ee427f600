"""Pydantic schemas for the course catalogue.

Request and response models for:
- Course creation, updates and deletion (educator)
- Public catalogue and course detail views
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from edumarket.courses.aggregates import (
    average_rating,
    course_duration,
    humanize_minutes,
    lecture_count,
)
from edumarket.courses.models import Course


# ==============================================================================
# Content Schemas
# ==============================================================================


class LectureSchema(BaseModel):
    """Lecture inside a chapter."""

    lecture_id: str = Field(..., min_length=1, max_length=100)
    lecture_title: str = Field(..., min_length=1, max_length=200)
    lecture_duration: float = Field(..., ge=0, description="Duration in minutes")
    lecture_url: str | None = Field(None, max_length=1000)
    is_preview_free: bool = False
    lecture_order: int | None = Field(None, ge=1)


class ChapterSchema(BaseModel):
    """Chapter with its lectures."""

    chapter_id: str = Field(..., min_length=1, max_length=100)
    chapter_title: str = Field(..., min_length=1, max_length=200)
    chapter_order: int | None = Field(None, ge=1)
    chapter_content: list[LectureSchema] = Field(default_factory=list)


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(
        None, max_length=20000, description="Course description"
    )
    thumbnail_url: str | None = Field(
        None, max_length=1000, description="Thumbnail image URL"
    )
    price: Decimal = Field(..., ge=0, description="List price")
    discount: int = Field(0, ge=0, le=100, description="Discount percentage")
    is_published: bool = Field(True, description="Visible in the catalogue")
    course_content: list[ChapterSchema] = Field(default_factory=list)


class UpdateCourseRequest(BaseModel):
    """Partial course update; fields left unset keep their stored value.

    Existing purchases keep the amount computed at purchase time. A new
    ``course_content`` replaces the chapter list and is renumbered 1..n.
    """

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=20000)
    thumbnail_url: str | None = Field(None, max_length=1000)
    price: Decimal | None = Field(None, ge=0, description="List price")
    discount: int | None = Field(None, ge=0, le=100, description="Discount percentage")
    is_published: bool | None = None
    course_content: list[ChapterSchema] | None = None


def _hide_locked_lectures(course_content: list[Any]) -> list[Any]:
    hidden = []
    for chapter in course_content:
        if not isinstance(chapter, Mapping) or not isinstance(
            chapter.get("chapter_content"), list
        ):
            hidden.append(chapter)
            continue
        lectures = [
            lecture
            if not isinstance(lecture, Mapping) or lecture.get("is_preview_free")
            else {**lecture, "lecture_url": None}
            for lecture in chapter["chapter_content"]
        ]
        hidden.append({**chapter, "chapter_content": lectures})
    return hidden


class CourseResponse(BaseModel):
    """Course response with derived aggregates."""

    course_id: str
    title: str
    description: str | None = None
    thumbnail_url: str | None = None
    educator_id: str
    price: Decimal
    discount: int
    is_published: bool
    course_content: list[Any]
    average_rating: int
    rating_count: int
    course_duration: float
    course_duration_text: str
    lecture_count: int
    enrolled_students_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(
        cls,
        course: Course,
        enrolled_students_count: int = 0,
        hide_locked_lectures: bool = False,
        locale: str = "en",
    ) -> "CourseResponse":
        """Build the response, optionally hiding URLs of non-preview lectures."""
        content = (
            _hide_locked_lectures(course.course_content)
            if hide_locked_lectures
            else course.course_content
        )
        duration = course_duration(course.course_content)
        return cls(
            course_id=course.course_id,
            title=course.title,
            description=course.description,
            thumbnail_url=course.thumbnail_url,
            educator_id=course.educator_id,
            price=course.price,
            discount=course.discount,
            is_published=course.is_published,
            course_content=content,
            average_rating=average_rating(course.course_ratings),
            rating_count=len(course.course_ratings),
            course_duration=duration,
            course_duration_text=humanize_minutes(duration, locale),
            lecture_count=lecture_count(course.course_content),
            enrolled_students_count=enrolled_students_count,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(BaseModel):
    """Course list response."""

    items: list[CourseResponse]
    total: int
