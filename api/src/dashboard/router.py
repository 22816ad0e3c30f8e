"""Dashboard and reporting endpoints.

Student dashboards live under /v1/dashboard, instructor reports under
/v1/instructors and system-wide reports under /v1/admin.
"""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import (
    AdminPrincipal,
    InstructorOrAdmin,
    StudentOrAdmin,
    ensure_can_act_for_student,
    ensure_can_view_instructor,
)
from src.core.schemas import ERROR_RESPONSES, ErrorResponse

from .dependencies import DashboardServiceDep
from .schemas import (
    AdminCoursesResponse,
    AdminStatsResponse,
    InstructorCoursesResponse,
    InstructorStatsResponse,
    StudentDashboardResponse,
)


router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])
instructor_router = APIRouter(prefix="/v1/instructors", tags=["dashboard"])
admin_router = APIRouter(prefix="/v1/admin", tags=["admin"])

_INSTRUCTOR_NOT_FOUND = {
    404: {"model": ErrorResponse, "description": "Instructor not found"}
}


@router.get(
    "/{student_id}",
    response_model=StudentDashboardResponse,
    responses=ERROR_RESPONSES,
)
async def student_dashboard(
    student_id: UUID,
    principal: StudentOrAdmin,
    dashboard_service: DashboardServiceDep,
) -> StudentDashboardResponse:
    """Enrollments with course info, progress and payment, newest first."""
    ensure_can_act_for_student(principal, student_id)
    return await dashboard_service.student_dashboard(student_id)


@instructor_router.get(
    "/{instructor_id}/stats",
    response_model=InstructorStatsResponse,
    responses={**_INSTRUCTOR_NOT_FOUND, **ERROR_RESPONSES},
)
async def instructor_stats(
    instructor_id: UUID,
    principal: InstructorOrAdmin,
    dashboard_service: DashboardServiceDep,
) -> InstructorStatsResponse:
    ensure_can_view_instructor(principal, instructor_id)
    return await dashboard_service.instructor_stats(instructor_id)


@instructor_router.get(
    "/{instructor_id}/courses",
    response_model=InstructorCoursesResponse,
    responses={**_INSTRUCTOR_NOT_FOUND, **ERROR_RESPONSES},
)
async def instructor_courses(
    instructor_id: UUID,
    principal: InstructorOrAdmin,
    dashboard_service: DashboardServiceDep,
) -> InstructorCoursesResponse:
    ensure_can_view_instructor(principal, instructor_id)
    return await dashboard_service.instructor_courses(instructor_id)


@admin_router.get(
    "/stats",
    response_model=AdminStatsResponse,
    responses=ERROR_RESPONSES,
)
async def admin_stats(
    _admin: AdminPrincipal,
    dashboard_service: DashboardServiceDep,
) -> AdminStatsResponse:
    """Active courses, students, instructors, enrollments and revenue."""
    return await dashboard_service.admin_stats()


@admin_router.get(
    "/courses",
    response_model=AdminCoursesResponse,
    responses=ERROR_RESPONSES,
)
async def admin_courses(
    _admin: AdminPrincipal,
    dashboard_service: DashboardServiceDep,
) -> AdminCoursesResponse:
    """All courses, including inactive ones, with enrollment totals."""
    return await dashboard_service.admin_courses()
