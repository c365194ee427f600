"""Course catalogue module.

Provides:
- Courses with embedded chapters and per-user ratings
- Derived aggregates: durations, lecture count, average rating
- Educator course management
"""

from .models import COURSES_TABLES_CQL, Course


__all__ = ["COURSES_TABLES_CQL", "Course"]
