"""Pydantic schemas for the course catalog."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.schemas import SuccessResponse

from .models import Course, normalize_course_code


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Admin request to add a course to the catalog."""

    code: str = Field(..., min_length=1, max_length=20, description="Unique course code")
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    duration_weeks: int = Field(..., gt=0, le=520)
    instructor_id: UUID
    category: str | None = Field(None, max_length=100)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        code = normalize_course_code(v)
        if not code:
            msg = "Course code is required"
            raise ValueError(msg)
        return code

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        if not v.strip():
            msg = "Title is required"
            raise ValueError(msg)
        return v.strip()


class UpdateCourseRequest(BaseModel):
    """Admin partial update; the course code itself never changes."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    duration_weeks: int | None = Field(None, gt=0, le=520)
    instructor_id: UUID | None = None
    category: str | None = Field(None, max_length=100)
    is_active: bool | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class CourseResponse(BaseModel):
    """Course as exposed by the API."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    title: str
    description: str | None = None
    price: Decimal
    duration_weeks: int
    instructor_id: UUID | None = None
    instructor_name: str | None = None
    category: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        """Create response from entity."""
        return cls(
            code=course.code,
            title=course.title,
            description=course.description,
            price=course.price,
            duration_weeks=course.duration_weeks,
            instructor_id=course.instructor_id,
            instructor_name=course.instructor_name,
            category=course.category,
            is_active=course.is_active,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(SuccessResponse):
    """Active catalog ordered by code."""

    courses: list[CourseResponse]
    total: int


class CourseDetailResponse(SuccessResponse):
    """Single course."""

    course: CourseResponse
