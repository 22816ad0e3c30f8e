"""Pydantic schemas for progress tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.core.schemas import SuccessResponse
from src.courses.models import normalize_course_code

from .models import MAX_INCREMENT, MIN_INCREMENT, ProgressState


class AdvanceProgressRequest(BaseModel):
    """Advance a student's progress in a course."""

    student_id: UUID
    course_code: str = Field(..., min_length=1, max_length=20)
    increment: int | None = Field(
        None,
        ge=MIN_INCREMENT,
        le=MAX_INCREMENT,
        description="Percentage points to add (defaults to 10)",
    )
    idempotency_key: str | None = Field(
        None,
        min_length=1,
        max_length=128,
        description="Client key; repeating the last applied key does not increment again",
    )

    @field_validator("course_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return normalize_course_code(v)


class ProgressResponse(SuccessResponse):
    """Progress after the call."""

    student_id: UUID
    course_code: str
    progress: int = Field(ge=0, le=100)
    completed: bool
    completion_date: datetime | None = None
    applied: bool = Field(
        True, description="False when nothing changed (already complete or replayed)"
    )

    @classmethod
    def from_state(
        cls,
        student_id: UUID,
        course_code: str,
        state: ProgressState,
        applied: bool = True,
    ) -> "ProgressResponse":
        """Create response from a progress state."""
        return cls(
            student_id=student_id,
            course_code=course_code,
            progress=state.progress,
            completed=state.completed,
            completion_date=state.completion_date,
            applied=applied,
        )
