"""A small school: two instructors, two active students, one inactive."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest
from fakes import seed_course, seed_enrollment, seed_principal

from src.auth.permissions import PrincipalKind


@dataclass
class School:
    ada: UUID
    bob: UUID
    sam: UUID
    lee: UUID


@pytest.fixture
def school(session, instructor_id, student_id, cs101) -> School:
    bob = seed_principal(
        session, PrincipalKind.INSTRUCTOR, "bob@school.edu", name="Bob Ross"
    )
    lee = seed_principal(session, PrincipalKind.STUDENT, "lee@school.edu", name="Lee")
    seed_principal(
        session, PrincipalKind.STUDENT, "gone@school.edu", name="Gone", is_active=False
    )

    seed_course(
        session,
        "DB201",
        title="Databases",
        price="50.00",
        instructor_id=instructor_id,
        instructor_name="Ada Lovelace",
    )
    seed_course(
        session,
        "ART1",
        title="Painting",
        price="5.00",
        instructor_id=bob,
        instructor_name="Bob Ross",
    )
    seed_course(session, "OLD1", title="Retired", instructor_id=bob, is_active=False)

    start = datetime(2024, 3, 1, tzinfo=UTC)
    seed_enrollment(
        session, student_id, cs101, progress=100, amount="99.90", enrolled_at=start
    )
    seed_enrollment(
        session,
        student_id,
        "DB201",
        progress=40,
        amount="50.00",
        method="bank_transfer",
        enrolled_at=start + timedelta(days=2),
    )
    # Abandoned claim: never visible in any report
    seed_enrollment(session, student_id, "ART1", status="pending", method=None)

    seed_enrollment(session, lee, cs101, progress=0, amount="99.90")
    seed_enrollment(session, lee, "ART1", progress=20, amount="5.00")

    return School(ada=instructor_id, bob=bob, sam=student_id, lee=lee)
