"""Pydantic schemas for the enrollment ledger."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.core.schemas import SuccessResponse
from src.courses.models import normalize_course_code

from .models import Enrollment, PaymentMethod


class EnrollRequest(BaseModel):
    """Enroll a student in a course and record the payment."""

    student_id: UUID
    course_code: str = Field(..., min_length=1, max_length=20)
    payment_method: PaymentMethod = Field(
        ..., description="Recorded payment method (no gateway involved)"
    )

    @field_validator("course_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return normalize_course_code(v)


class EnrollResponse(SuccessResponse):
    """Committed enrollment."""

    enrollment_id: UUID
    student_id: UUID
    course_code: str
    amount_paid: Decimal
    enrolled_at: datetime
    message: str = "Enrollment successful"

    @classmethod
    def from_entity(cls, enrollment: Enrollment) -> "EnrollResponse":
        """Create response from entity."""
        return cls(
            enrollment_id=enrollment.enrollment_id,
            student_id=enrollment.student_id,
            course_code=enrollment.course_code,
            amount_paid=enrollment.amount_paid,
            enrolled_at=enrollment.enrolled_at,
        )
