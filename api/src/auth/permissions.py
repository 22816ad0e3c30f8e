"""Principal kinds and access rules.

There are three kinds of principal, each registering and logging in through
its own account space (the same email may exist once per kind):
- STUDENT: enrolls in courses and advances their own progress
- INSTRUCTOR: teaches courses, sees rollups for their own courses
- ADMIN: manages the catalog and principals, can act for anyone
"""

from enum import Enum
from uuid import UUID


class PrincipalKind(str, Enum):
    """Kind of authenticated actor."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


def is_admin(kind: PrincipalKind | str) -> bool:
    """Check if kind is ADMIN."""
    return PrincipalKind(kind) == PrincipalKind.ADMIN


def can_act_for_student(
    kind: PrincipalKind | str,
    principal_id: UUID | str,
    student_id: UUID | str,
) -> bool:
    """Whether a principal may enroll, advance or read data for ``student_id``.

    Students may only act on their own record; admins may act for anyone.
    Instructors never act on behalf of students.

    Examples:
        >>> from uuid import uuid4
        >>> me = uuid4()
        >>> can_act_for_student("student", me, me)
        True
        >>> can_act_for_student("student", me, uuid4())
        False
        >>> can_act_for_student("admin", me, uuid4())
        True
    """
    if is_admin(kind):
        return True
    return PrincipalKind(kind) == PrincipalKind.STUDENT and str(principal_id) == str(
        student_id
    )


def can_view_instructor(
    kind: PrincipalKind | str,
    principal_id: UUID | str,
    instructor_id: UUID | str,
) -> bool:
    """Whether a principal may read an instructor's rollups."""
    if is_admin(kind):
        return True
    return PrincipalKind(kind) == PrincipalKind.INSTRUCTOR and str(
        principal_id
    ) == str(instructor_id)
