"""Pydantic schemas for authentication.

Request and response models for:
- Registration and login
- Principal profiles and admin listings
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.auth.models import Principal
from src.auth.permissions import PrincipalKind
from src.auth.validators import validate_name, validate_password
from src.core.schemas import SuccessResponse


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """Principal registration request."""

    kind: PrincipalKind = Field(
        default=PrincipalKind.STUDENT, description="Account kind to create"
    )
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    phone: str | None = Field(None, max_length=20, description="Phone number")
    department: str | None = Field(
        None, max_length=100, description="Department (instructors)"
    )

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str) -> str:
        result = validate_name(v)
        if not result.valid:
            raise ValueError(result.message)
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        result = validate_password(v)
        if not result.valid:
            raise ValueError(result.message)
        return v


class LoginRequest(BaseModel):
    """Login request, scoped to one principal kind."""

    kind: PrincipalKind = Field(default=PrincipalKind.STUDENT)
    email: EmailStr
    password: str = Field(..., min_length=1)


# ==============================================================================
# Response Schemas
# ==============================================================================


class PrincipalResponse(BaseModel):
    """Public principal profile (never includes credentials)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kind: PrincipalKind
    email: str
    name: str
    phone: str | None = None
    department: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    @classmethod
    def from_entity(cls, principal: Principal) -> "PrincipalResponse":
        """Create response from entity."""
        return cls(
            id=principal.id,
            kind=PrincipalKind(principal.kind),
            email=principal.email,
            name=principal.name,
            phone=principal.phone,
            department=principal.department,
            is_active=principal.is_active,
            created_at=principal.created_at,
            last_login_at=principal.last_login_at,
        )


class RegisterResponse(SuccessResponse):
    """Registration result."""

    id: UUID
    message: str = "Registration successful"


class LoginResponse(SuccessResponse):
    """Login result: profile plus bearer token."""

    principal: PrincipalResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token lifetime in seconds")


class MeResponse(SuccessResponse):
    """Current principal profile."""

    principal: PrincipalResponse


class PrincipalListResponse(SuccessResponse):
    """Principals of one kind, ordered by email."""

    kind: PrincipalKind
    principals: list[PrincipalResponse]
    total: int
