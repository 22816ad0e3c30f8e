"""Response envelopes shared by every router.

Each body carries an explicit ``success`` discriminant so clients never infer
the outcome from the presence or absence of other fields.
"""

from typing import Literal

from pydantic import BaseModel, Field


class SuccessResponse(BaseModel):
    """Base for all successful responses."""

    success: Literal[True] = True


class MessageResponse(SuccessResponse):
    """Success with a human readable message only."""

    message: str


class ErrorDetail(BaseModel):
    """One field-level validation problem."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    success: Literal[False] = False
    error: str = Field(description="Stable machine readable error code")
    message: str
    status_code: int
    retryable: bool = False
    request_id: str | None = None
    details: list[ErrorDetail] | None = None


ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Permission denied"},
    422: {"model": ErrorResponse, "description": "Invalid input"},
    503: {"model": ErrorResponse, "description": "Store unavailable, retry"},
}
