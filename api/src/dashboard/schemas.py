"""Pydantic schemas for dashboards and reports."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from src.core.schemas import SuccessResponse


# ==============================================================================
# Student
# ==============================================================================


class DashboardEnrollment(BaseModel):
    """One enrollment on the student dashboard."""

    enrollment_id: UUID
    course_code: str
    title: str
    instructor_name: str | None = None
    enrolled_at: datetime
    progress: int
    is_completed: bool
    completion_date: datetime | None = None
    amount_paid: Decimal
    payment_method: str | None = None
    paid_at: datetime | None = None


class ProgressSummary(BaseModel):
    """Counts by progress bucket."""

    total: int = 0
    completed: int = 0
    in_progress: int = Field(0, description="0 < progress < 100")
    not_started: int = Field(0, description="progress == 0")
    average_progress: float = 0.0


class StudentDashboardResponse(SuccessResponse):
    """Everything the student home page shows."""

    student_id: UUID
    enrollments: list[DashboardEnrollment]
    summary: ProgressSummary


# ==============================================================================
# Instructor
# ==============================================================================


class InstructorStatsResponse(SuccessResponse):
    """Rollup over all courses taught by an instructor."""

    instructor_id: UUID
    total_courses: int
    total_students: int = Field(description="Distinct students across courses")
    total_enrollments: int
    not_started: int
    in_progress: int
    completed: int
    average_progress: float
    total_revenue: Decimal


class InstructorCourse(BaseModel):
    """One course with its enrollment rollup."""

    code: str
    title: str
    description: str | None = None
    duration_weeks: int
    price: Decimal
    is_active: bool
    enrolled_students: int
    average_progress: float


class InstructorCoursesResponse(SuccessResponse):
    """Courses taught by an instructor, ordered by code."""

    instructor_id: UUID
    courses: list[InstructorCourse]


# ==============================================================================
# Admin
# ==============================================================================


class AdminStatsResponse(SuccessResponse):
    """System-wide totals."""

    total_courses: int = Field(description="Active courses")
    total_students: int = Field(description="Active students")
    total_instructors: int = Field(description="Active instructors")
    total_enrollments: int
    total_revenue: Decimal


class AdminCourse(BaseModel):
    """Catalog row with enrollment totals."""

    code: str
    title: str
    instructor_id: UUID | None = None
    instructor_name: str | None = None
    price: Decimal
    duration_weeks: int
    category: str | None = None
    is_active: bool
    total_enrollments: int
    revenue: Decimal


class AdminCoursesResponse(SuccessResponse):
    """Every course (active or not), ordered by code."""

    courses: list[AdminCourse]
