"""Enrollment API endpoints."""

from fastapi import APIRouter, status

from src.auth.dependencies import StudentOrAdmin, ensure_can_act_for_student
from src.core.schemas import ERROR_RESPONSES, ErrorResponse

from .dependencies import EnrollmentServiceDep
from .schemas import EnrollRequest, EnrollResponse


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=EnrollResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Course not found or inactive"},
        409: {
            "model": ErrorResponse,
            "description": "Already enrolled, or an enrollment is in progress (retryable)",
        },
        **ERROR_RESPONSES,
    },
)
async def enroll(
    data: EnrollRequest,
    principal: StudentOrAdmin,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollResponse:
    """Enroll a student in a course, recording the payment at the current price.

    Students enroll themselves; admins may enroll any student.
    """
    ensure_can_act_for_student(principal, data.student_id)
    enrollment = await enrollment_service.enroll(
        data.student_id, data.course_code, data.payment_method
    )
    return EnrollResponse.from_entity(enrollment)
