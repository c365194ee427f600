"""Derived course aggregates.

Pure functions over a course's chapter list and rating map. Nothing here
touches storage; the catalogue, progress and dashboard services call them
when building responses.

Chapters come from stored JSON, so a chapter whose ``chapter_content`` is not
a list is tolerated: it counts as zero lectures and zero minutes, and a
warning is logged.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from edumarket.core.exceptions import InvalidArgumentError


logger = structlog.get_logger(__name__)

# Unit labels per locale: (hour singular, hour plural, minute singular,
# minute plural, delimiter)
DURATION_LABELS: dict[str, tuple[str, str, str, str, str]] = {
    "en": ("hour", "hours", "minute", "minutes", " "),
    "vi": ("giờ", "giờ", "phút", "phút", ", "),
    "pt": ("hora", "horas", "minuto", "minutos", " e "),
}
DEFAULT_LOCALE = "en"


def _chapter_lectures(chapter: Mapping[str, Any]) -> list[Any] | None:
    content = chapter.get("chapter_content") if isinstance(chapter, Mapping) else None
    if isinstance(content, list):
        return content
    logger.warning(
        "malformed_chapter_content",
        chapter_id=chapter.get("chapter_id") if isinstance(chapter, Mapping) else None,
        content_type=type(content).__name__,
    )
    return None


def _lecture_minutes(lecture: Any) -> float:
    duration = lecture.get("lecture_duration", 0) if isinstance(lecture, Mapping) else 0
    if isinstance(duration, bool) or not isinstance(duration, int | float):
        raise InvalidArgumentError(f"Invalid lecture duration: {duration!r}")
    if duration < 0:
        raise InvalidArgumentError("Lecture duration must be >= 0")
    return duration


def chapter_duration(chapter: Mapping[str, Any]) -> float:
    """Sum of lecture durations in a chapter, in minutes."""
    lectures = _chapter_lectures(chapter)
    if lectures is None:
        return 0
    return sum(_lecture_minutes(lecture) for lecture in lectures)


def course_duration(course_content: Sequence[Any]) -> float:
    """Sum of chapter durations across the course, in minutes."""
    return sum(chapter_duration(chapter) for chapter in course_content)


def lecture_count(course_content: Sequence[Any]) -> int:
    """Total number of lectures across all well-formed chapters."""
    total = 0
    for chapter in course_content:
        lectures = _chapter_lectures(chapter)
        if lectures is not None:
            total += len(lectures)
    return total


def lecture_ids(course_content: Sequence[Any]) -> set[str]:
    """IDs of every lecture in the course."""
    ids: set[str] = set()
    for chapter in course_content:
        for lecture in _chapter_lectures(chapter) or []:
            if isinstance(lecture, Mapping) and lecture.get("lecture_id"):
                ids.add(str(lecture["lecture_id"]))
    return ids


def average_rating(course_ratings: Mapping[str, int]) -> int:
    """Floor of the mean rating, 0 when the course has no ratings."""
    if not course_ratings:
        return 0
    return sum(course_ratings.values()) // len(course_ratings)


def humanize_minutes(minutes: float, locale: str = DEFAULT_LOCALE) -> str:
    """Render minutes as hours and minutes, e.g. ``"2 hours 15 minutes"``.

    Units that are zero are omitted; zero overall renders as ``"0 minutes"``.
    Unknown locales fall back to English.
    """
    hour_one, hour_many, minute_one, minute_many, delimiter = DURATION_LABELS.get(
        locale, DURATION_LABELS[DEFAULT_LOCALE]
    )
    total = round(minutes)
    hours, mins = divmod(total, 60)

    parts = []
    if hours:
        parts.append(f"{hours} {hour_one if hours == 1 else hour_many}")
    if mins or not hours:
        parts.append(f"{mins} {minute_one if mins == 1 else minute_many}")
    return delimiter.join(parts)


def normalize_content_order(course_content: Sequence[Any]) -> list[dict[str, Any]]:
    """Renumber chapters and their lectures to contiguous 1..n.

    Existing ``chapter_order`` / ``lecture_order`` values decide the relative
    order (missing values sort last, ties keep input order).
    """

    def order_key(item: tuple[int, Mapping[str, Any]], field: str) -> tuple[int, Any, int]:
        index, value = item
        order = value.get(field)
        return (order is None, order if order is not None else 0, index)

    chapters = [dict(chapter) for chapter in course_content if isinstance(chapter, Mapping)]
    chapters = [
        chapter
        for _, chapter in sorted(
            enumerate(chapters), key=lambda item: order_key(item, "chapter_order")
        )
    ]

    for position, chapter in enumerate(chapters, start=1):
        chapter["chapter_order"] = position
        lectures = chapter.get("chapter_content")
        if not isinstance(lectures, list):
            continue
        lectures = [dict(lecture) for lecture in lectures if isinstance(lecture, Mapping)]
        ordered = [
            lecture
            for _, lecture in sorted(
                enumerate(lectures), key=lambda item: order_key(item, "lecture_order")
            )
        ]
        for lecture_position, lecture in enumerate(ordered, start=1):
            lecture["lecture_order"] = lecture_position
        chapter["chapter_content"] = ordered

    return chapters
