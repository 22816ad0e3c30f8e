"""Shared fixtures.

Services run against ``FakeCassandraSession`` (see ``fakes.py``) so ledger
behaviour is exercised end to end without a cluster.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("CASSANDRA_REQUEST_TIMEOUT", "0.5")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key-with-at-least-32-characters")

from collections.abc import Iterator  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from fakes import FakeCassandraSession, seed_course, seed_principal  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import PrincipalKind  # noqa: E402
from src.auth.service import AuthService  # noqa: E402
from src.courses.service import CourseService  # noqa: E402
from src.dashboard.service import DashboardService  # noqa: E402
from src.enrollments.service import EnrollmentService  # noqa: E402
from src.progress.service import ProgressService  # noqa: E402


KEYSPACE = "lms_test"


# ==============================================================================
# Store and services
# ==============================================================================


@pytest.fixture
def session() -> FakeCassandraSession:
    return FakeCassandraSession()


@pytest.fixture
def auth_service(session) -> AuthService:
    return AuthService(session=session, keyspace=KEYSPACE)


@pytest.fixture
def course_service(session, auth_service) -> CourseService:
    return CourseService(session=session, keyspace=KEYSPACE, auth_service=auth_service)


@pytest.fixture
def enrollment_service(session, course_service) -> EnrollmentService:
    return EnrollmentService(
        session=session, keyspace=KEYSPACE, course_service=course_service
    )


@pytest.fixture
def progress_service(session, enrollment_service, course_service) -> ProgressService:
    return ProgressService(
        session=session,
        keyspace=KEYSPACE,
        enrollment_service=enrollment_service,
        course_service=course_service,
    )


@pytest.fixture
def dashboard_service(enrollment_service, course_service, auth_service):
    return DashboardService(
        enrollment_service=enrollment_service,
        course_service=course_service,
        auth_service=auth_service,
    )


# ==============================================================================
# Seed data
# ==============================================================================


@pytest.fixture
def instructor_id(session) -> UUID:
    return seed_principal(
        session,
        PrincipalKind.INSTRUCTOR,
        "ada@school.edu",
        name="Ada Lovelace",
        department="Computing",
    )


@pytest.fixture
def student_id(session) -> UUID:
    return seed_principal(session, PrincipalKind.STUDENT, "sam@school.edu", name="Sam")


@pytest.fixture
def cs101(session, instructor_id) -> str:
    return seed_course(
        session,
        "CS101",
        title="Intro to Programming",
        price="99.90",
        instructor_id=instructor_id,
        instructor_name="Ada Lovelace",
    )


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Client on the real app, without running the lifespan (no cluster)."""
    from src import main

    yield TestClient(main.app)

    # Undo getter overrides made by the test
    from src.auth.router import set_auth_service_getter
    from src.courses.dependencies import set_course_service_getter
    from src.dashboard.dependencies import set_dashboard_service_getter
    from src.enrollments.dependencies import set_enrollment_service_getter
    from src.health import set_store_session_getter
    from src.progress.dependencies import set_progress_service_getter

    set_auth_service_getter(main.get_auth_service)
    set_course_service_getter(main.get_course_service)
    set_enrollment_service_getter(main.get_enrollment_service)
    set_progress_service_getter(main.get_progress_service)
    set_dashboard_service_getter(main.get_dashboard_service)
    set_store_session_getter(main.get_store_session)
