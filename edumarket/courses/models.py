"""Database models for the course catalogue.

Cassandra table definitions for:
- Courses: Main course table, chapters embedded as JSON, ratings as a map
- Lookup tables: Courses by educator for the dashboard

Ratings live on the course row as ``map<text, int>`` keyed by user ID so a
learner re-rating a course is a single atomic map-entry write.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def load_course_content(raw: str | None) -> list[Any]:
    """Decode the stored chapter list; anything but a JSON list becomes []."""
    if not raw:
        return []
    content = json.loads(raw)
    return content if isinstance(content, list) else []


def dump_course_content(content: list[Any]) -> str:
    """Encode a chapter list for the ``course_content`` column."""
    return json.dumps(content, default=str)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Curso com capitulos embutidos (JSON) e avaliacoes por usuario (map)
COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    course_id TEXT PRIMARY KEY,
    title TEXT,
    description TEXT,
    thumbnail_url TEXT,
    educator_id TEXT,
    price DECIMAL,
    discount INT,
    is_published BOOLEAN,
    course_content TEXT,
    course_ratings MAP<TEXT, INT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup: cursos por educador - particionado por educator_id
# Para queries: "quais cursos este educador publicou?"
COURSES_BY_EDUCATOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_educator (
    educator_id TEXT,
    course_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (educator_id, course_id)
)
"""

# Catalogo publico (sem busca/filtro, apenas listagem)
COURSES_PUBLISHED_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS courses_published_idx
ON {keyspace}.courses (is_published)
"""

# All CQL statements for table setup
COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_EDUCATOR_TABLE_CQL,
    COURSES_PUBLISHED_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        course_id: Course identifier (opaque string)
        title: Course title
        description: Course description (HTML allowed)
        thumbnail_url: Thumbnail URL in the object store
        educator_id: Identity provider ID of the owning educator
        price: List price in the checkout currency
        discount: Discount percentage, 0-100
        is_published: Visible in the public catalogue
        course_content: Chapters, each ``{chapter_id, chapter_title,
            chapter_order, chapter_content: [lecture, ...]}``
        course_ratings: User ID -> rating (1-5)
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        course_id: str,
        title: str,
        educator_id: str,
        price: Decimal = Decimal(0),
        discount: int = 0,
        description: str | None = None,
        thumbnail_url: str | None = None,
        is_published: bool = True,
        course_content: list[Any] | None = None,
        course_ratings: dict[str, int] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.title = title
        self.educator_id = educator_id
        self.price = price
        self.discount = discount
        self.description = description
        self.thumbnail_url = thumbnail_url
        self.is_published = is_published
        self.course_content = course_content or []
        self.course_ratings = course_ratings or {}
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            title=row.title,
            educator_id=row.educator_id,
            price=row.price if row.price is not None else Decimal(0),
            discount=row.discount or 0,
            description=row.description,
            thumbnail_url=row.thumbnail_url,
            is_published=bool(row.is_published),
            course_content=load_course_content(row.course_content),
            course_ratings=dict(row.course_ratings or {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Course {self.course_id} {self.title!r}>"
