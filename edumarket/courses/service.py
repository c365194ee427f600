# ruff: noqa: S608
"""Course catalogue service layer.

Business logic for:
- Educator course creation with contiguous chapter/lecture ordering
- Public catalogue listing and course lookup
- Course edits and deletion by the owning educator (purchases keep the
  amount computed at creation; progress on a deleted course is left as is)
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from edumarket.core.exceptions import ForbiddenError, NotFoundError
from edumarket.courses.aggregates import normalize_content_order
from edumarket.courses.models import Course, dump_course_content
from edumarket.courses.schemas import CreateCourseRequest, UpdateCourseRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class CourseService:
    """Service for course catalogue management."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE course_id = ?"
        )

        self._get_courses_in = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE course_id IN ?"
        )

        self._list_published = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE is_published = ?"
        )

        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (course_id, title, description, thumbnail_url, educator_id, price,
             discount, is_published, course_content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, thumbnail_url = ?, price = ?,
                discount = ?, is_published = ?, course_content = ?, updated_at = ?
            WHERE course_id = ?
        """)

        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE course_id = ?"
        )

        # Courses by educator (lookup)
        self._insert_course_by_educator = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_educator
            (educator_id, course_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._list_educator_course_ids = self.session.prepare(
            f"SELECT course_id FROM {self.keyspace}.courses_by_educator "
            "WHERE educator_id = ?"
        )

        self._delete_course_by_educator = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses_by_educator "
            "WHERE educator_id = ? AND course_id = ?"
        )

    # ==========================================================================
    # Read Operations
    # ==========================================================================

    async def get_course(self, course_id: str) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: str) -> Course:
        """Get course by ID.

        Raises:
            NotFoundError: If the course does not exist
        """
        course = await self.get_course(course_id)
        if course is None:
            raise NotFoundError(f"Course {course_id} not found", "course_not_found")
        return course

    async def get_courses(self, course_ids: list[str]) -> list[Course]:
        """Get several courses, preserving the order of ``course_ids``.

        IDs with no matching row are skipped.
        """
        if not course_ids:
            return []
        rows = await self.session.aexecute(self._get_courses_in, [list(course_ids)])
        by_id = {row.course_id: Course.from_row(row) for row in rows}
        return [by_id[course_id] for course_id in course_ids if course_id in by_id]

    async def list_published(self) -> list[Course]:
        """List courses visible in the public catalogue, newest first."""
        rows = await self.session.aexecute(self._list_published, [True])
        courses = [Course.from_row(row) for row in rows]
        return sorted(courses, key=lambda course: course.created_at, reverse=True)

    async def list_educator_course_ids(self, educator_id: str) -> list[str]:
        """IDs of every course owned by an educator."""
        rows = await self.session.aexecute(
            self._list_educator_course_ids, [educator_id]
        )
        return [row.course_id for row in rows]

    async def list_by_educator(self, educator_id: str) -> list[Course]:
        """List an educator's courses, newest first."""
        course_ids = await self.list_educator_course_ids(educator_id)
        courses = await self.get_courses(course_ids)
        return sorted(courses, key=lambda course: course.created_at, reverse=True)

    async def get_educator_course(self, course_id: str, educator_id: str) -> Course:
        """Get a course owned by ``educator_id``.

        Raises:
            NotFoundError: If the course does not exist
            ForbiddenError: If the course belongs to another educator
        """
        course = await self.require_course(course_id)
        if course.educator_id != educator_id:
            raise ForbiddenError("Course belongs to another educator")
        return course

    # ==========================================================================
    # Write Operations
    # ==========================================================================

    async def create_course(
        self, educator_id: str, data: CreateCourseRequest
    ) -> Course:
        """Create a course for an educator.

        Chapter and lecture orders are renumbered to contiguous 1..n.
        """
        now = datetime.now(UTC)
        content = normalize_content_order(
            [chapter.model_dump() for chapter in data.course_content]
        )
        course = Course(
            course_id=str(uuid4()),
            title=data.title,
            educator_id=educator_id,
            price=data.price,
            discount=data.discount,
            description=data.description,
            thumbnail_url=data.thumbnail_url,
            is_published=data.is_published,
            course_content=content,
            created_at=now,
        )

        # Lookup first so the dashboard never misses a course row that exists
        await self.session.aexecute(
            self._insert_course_by_educator,
            [educator_id, course.course_id, now],
        )
        await self.session.aexecute(
            self._insert_course,
            [
                course.course_id,
                course.title,
                course.description,
                course.thumbnail_url,
                course.educator_id,
                course.price,
                course.discount,
                course.is_published,
                dump_course_content(course.course_content),
                course.created_at,
                course.updated_at,
            ],
        )

        logger.info(
            "course_created",
            course_id=course.course_id,
            educator_id=educator_id,
            chapters=len(content),
        )
        return course

    async def update_course(
        self, course_id: str, educator_id: str, data: UpdateCourseRequest
    ) -> Course:
        """Apply a partial update to an educator's course.

        Raises:
            NotFoundError: If the course does not exist
            ForbiddenError: If the course belongs to another educator
        """
        course = await self.get_educator_course(course_id, educator_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "course_content" in changes:
            changes["course_content"] = normalize_content_order(
                changes["course_content"]
            )
        for field, value in changes.items():
            setattr(course, field, value)
        course.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_course,
            [
                course.title,
                course.description,
                course.thumbnail_url,
                course.price,
                course.discount,
                course.is_published,
                dump_course_content(course.course_content),
                course.updated_at,
                course_id,
            ],
        )

        logger.info(
            "course_updated",
            course_id=course_id,
            educator_id=educator_id,
            fields=sorted(changes),
        )
        return course

    async def delete_course(self, course_id: str, educator_id: str) -> None:
        """Delete an educator's course and its lookup row.

        Enrollments, purchases and progress that reference the course stay.

        Raises:
            NotFoundError: If the course does not exist
            ForbiddenError: If the course belongs to another educator
        """
        await self.get_educator_course(course_id, educator_id)

        await self.session.aexecute(self._delete_course, [course_id])
        await self.session.aexecute(
            self._delete_course_by_educator, [educator_id, course_id]
        )

        logger.info("course_deleted", course_id=course_id, educator_id=educator_id)
