"""Course catalog API endpoints.

Public:
- GET /v1/courses: active catalog ordered by code
- GET /v1/courses/{code}: one course

Admin:
- POST /v1/admin/courses
- PATCH /v1/admin/courses/{code}
- DELETE /v1/admin/courses/{code} (soft deactivation)
"""

from fastapi import APIRouter, status

from src.auth.dependencies import AdminPrincipal
from src.core.schemas import ERROR_RESPONSES, ErrorResponse

from .dependencies import CourseServiceDep
from .schemas import (
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    UpdateCourseRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])
admin_router = APIRouter(prefix="/v1/admin/courses", tags=["admin"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Course not found"}}


@router.get("", response_model=CourseListResponse, responses=ERROR_RESPONSES)
async def list_courses(course_service: CourseServiceDep) -> CourseListResponse:
    """Active courses ordered by code."""
    courses = await course_service.list_active()
    return CourseListResponse(
        courses=[CourseResponse.from_entity(c) for c in courses],
        total=len(courses),
    )


@router.get(
    "/{code}",
    response_model=CourseDetailResponse,
    responses={**_NOT_FOUND, **ERROR_RESPONSES},
)
async def get_course(code: str, course_service: CourseServiceDep) -> CourseDetailResponse:
    """Course by code."""
    course = await course_service.get_or_raise(code)
    return CourseDetailResponse(course=CourseResponse.from_entity(course))


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.post(
    "",
    response_model=CourseDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Course code already exists"},
        **ERROR_RESPONSES,
    },
)
async def create_course(
    data: CreateCourseRequest,
    _admin: AdminPrincipal,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    """Add a course taught by an existing, active instructor."""
    course = await course_service.create(data)
    return CourseDetailResponse(course=CourseResponse.from_entity(course))


@admin_router.patch(
    "/{code}",
    response_model=CourseDetailResponse,
    responses={**_NOT_FOUND, **ERROR_RESPONSES},
)
async def update_course(
    code: str,
    data: UpdateCourseRequest,
    _admin: AdminPrincipal,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    """Partially update a course. The code cannot change."""
    course = await course_service.update(code, data)
    return CourseDetailResponse(course=CourseResponse.from_entity(course))


@admin_router.delete(
    "/{code}",
    response_model=CourseDetailResponse,
    responses={**_NOT_FOUND, **ERROR_RESPONSES},
)
async def deactivate_course(
    code: str,
    _admin: AdminPrincipal,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    """Deactivate a course. Enrollments and payments are kept."""
    course = await course_service.deactivate(code)
    return CourseDetailResponse(course=CourseResponse.from_entity(course))
