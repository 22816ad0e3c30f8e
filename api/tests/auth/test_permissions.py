"""Tests for principal kinds and access rules."""

from uuid import uuid4

import pytest

from src.auth.permissions import (
    PrincipalKind,
    can_act_for_student,
    can_view_instructor,
    is_admin,
)


class TestPrincipalKind:
    def test_kind_values(self) -> None:
        assert PrincipalKind.STUDENT.value == "student"
        assert PrincipalKind.INSTRUCTOR.value == "instructor"
        assert PrincipalKind.ADMIN.value == "admin"

    def test_is_admin(self) -> None:
        assert is_admin("admin") is True
        assert is_admin(PrincipalKind.STUDENT) is False


class TestCanActForStudent:
    """Students act only for themselves; admins for anyone."""

    def test_student_self(self) -> None:
        me = uuid4()
        assert can_act_for_student(PrincipalKind.STUDENT, me, me) is True

    def test_student_other(self) -> None:
        assert can_act_for_student(PrincipalKind.STUDENT, uuid4(), uuid4()) is False

    def test_admin_anyone(self) -> None:
        assert can_act_for_student(PrincipalKind.ADMIN, uuid4(), uuid4()) is True

    def test_instructor_never(self) -> None:
        me = uuid4()
        assert can_act_for_student(PrincipalKind.INSTRUCTOR, me, me) is False

    def test_string_ids_compare_with_uuids(self) -> None:
        me = uuid4()
        assert can_act_for_student("student", str(me), me) is True


class TestCanViewInstructor:
    @pytest.mark.parametrize(
        "kind,same,expected",
        [
            (PrincipalKind.INSTRUCTOR, True, True),
            (PrincipalKind.INSTRUCTOR, False, False),
            (PrincipalKind.ADMIN, False, True),
            (PrincipalKind.STUDENT, True, False),
        ],
    )
    def test_rules(self, kind: PrincipalKind, same: bool, expected: bool) -> None:
        me = uuid4()
        target = me if same else uuid4()
        assert can_view_instructor(kind, me, target) is expected
