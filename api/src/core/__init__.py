# Core infrastructure
from src.core.context import (
    clear_context,
    get_context,
    get_principal_id,
    get_request_id,
    get_trace_id,
    set_principal,
    set_request_id,
    set_trace_id,
)
from src.core.exceptions import (
    AppError,
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationError,
)
from src.core.logging import configure_structlog, get_logger


__all__ = [
    "AppError",
    "AuthError",
    "ConflictError",
    "InternalError",
    "NotFoundError",
    "PermissionDeniedError",
    "StoreUnavailableError",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_principal_id",
    "get_request_id",
    "get_trace_id",
    "set_principal",
    "set_request_id",
    "set_trace_id",
]
