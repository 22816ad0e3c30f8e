"""Progress tracking API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import StudentOrAdmin, ensure_can_act_for_student
from src.core.schemas import ERROR_RESPONSES, ErrorResponse
from src.courses.models import normalize_course_code

from .dependencies import ProgressServiceDep
from .schemas import AdvanceProgressRequest, ProgressResponse


router = APIRouter(prefix="/v1/progress", tags=["progress"])

_NOT_FOUND = {
    404: {"model": ErrorResponse, "description": "Enrollment or course not found"}
}


@router.post(
    "",
    response_model=ProgressResponse,
    responses={
        **_NOT_FOUND,
        409: {"model": ErrorResponse, "description": "Concurrent updates, retry"},
        **ERROR_RESPONSES,
    },
)
async def advance_progress(
    data: AdvanceProgressRequest,
    principal: StudentOrAdmin,
    progress_service: ProgressServiceDep,
) -> ProgressResponse:
    """Advance progress (default +10), saturating at 100.

    Completing a course sets ``completion_date`` once; later calls return the
    completed state unchanged.
    """
    ensure_can_act_for_student(principal, data.student_id)
    result = await progress_service.advance_progress(
        data.student_id,
        data.course_code,
        increment=data.increment,
        idempotency_key=data.idempotency_key,
    )
    return ProgressResponse.from_state(
        data.student_id, data.course_code, result.state, applied=result.applied
    )


@router.get(
    "/{student_id}/{course_code}",
    response_model=ProgressResponse,
    responses={**_NOT_FOUND, **ERROR_RESPONSES},
)
async def get_progress(
    student_id: UUID,
    course_code: str,
    principal: StudentOrAdmin,
    progress_service: ProgressServiceDep,
) -> ProgressResponse:
    """Current progress of one enrollment."""
    ensure_can_act_for_student(principal, student_id)
    code = normalize_course_code(course_code)
    state = await progress_service.get_progress(student_id, code)
    return ProgressResponse.from_state(student_id, code, state, applied=False)
