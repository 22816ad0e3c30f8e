"""HTTP tests for POST /v1/enrollments."""

from uuid import uuid4

import pytest
from fakes import bearer, seed_course
from fastapi.testclient import TestClient

from src.auth.permissions import PrincipalKind


@pytest.fixture
def api(client: TestClient, enrollment_service, session, instructor_id) -> TestClient:
    from src.enrollments.dependencies import set_enrollment_service_getter

    seed_course(session, "CS101", price="30000", instructor_id=instructor_id)
    set_enrollment_service_getter(lambda: enrollment_service)
    return client


def _body(student_id, code="CS101", method="credit-card") -> dict:
    return {"student_id": str(student_id), "course_code": code, "payment_method": method}


class TestEnrollEndpoint:
    def test_student_enrolls_self(self, api: TestClient, student_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(student_id, code="cs101"),
            headers=bearer(student_id, PrincipalKind.STUDENT),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["course_code"] == "CS101"
        assert body["amount_paid"] == "30000"
        assert "enrollment_id" in body

    def test_second_enroll_conflicts(self, api: TestClient, student_id) -> None:
        headers = bearer(student_id, PrincipalKind.STUDENT)
        api.post("/v1/enrollments", json=_body(student_id), headers=headers)

        response = api.post("/v1/enrollments", json=_body(student_id), headers=headers)

        assert response.status_code == 409
        assert response.json()["error"] == "already_enrolled"

    def test_unknown_course(self, api: TestClient, student_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(student_id, code="NOPE"),
            headers=bearer(student_id, PrincipalKind.STUDENT),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "course_not_found"

    def test_student_cannot_enroll_someone_else(self, api: TestClient, student_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(uuid4()),
            headers=bearer(student_id, PrincipalKind.STUDENT),
        )

        assert response.status_code == 403

    def test_admin_enrolls_any_student(self, api: TestClient, student_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(student_id, method="bank_transfer"),
            headers=bearer(uuid4(), PrincipalKind.ADMIN),
        )

        assert response.status_code == 201

    def test_instructor_forbidden(self, api: TestClient, student_id, instructor_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(student_id),
            headers=bearer(instructor_id, PrincipalKind.INSTRUCTOR),
        )

        assert response.status_code == 403

    def test_requires_token(self, api: TestClient, student_id) -> None:
        response = api.post("/v1/enrollments", json=_body(student_id))

        assert response.status_code == 401

    def test_unknown_payment_method(self, api: TestClient, student_id) -> None:
        response = api.post(
            "/v1/enrollments",
            json=_body(student_id, method="bitcoin"),
            headers=bearer(student_id, PrincipalKind.STUDENT),
        )

        assert response.status_code == 422
