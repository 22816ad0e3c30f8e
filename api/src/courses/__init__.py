"""Course catalog module."""

from .models import COURSES_TABLES_CQL, Course, normalize_course_code


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "normalize_course_code",
]
