"""Application error taxonomy.

Every domain error derives from ``AppError`` and carries a stable ``code``
(exposed to API callers) and the HTTP status it maps to. Feature modules
subclass the kind that fits (e.g. ``CourseNotFoundError(NotFoundError)``) and
``main.py`` renders all of them through one exception handler.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str, code: str = "app_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Input failed a domain rule."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str = "Invalid input", code: str = "invalid_input"):
        super().__init__(message, code)


class NotFoundError(AppError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code)


class ConflictError(AppError):
    """Write rejected because it would break a uniqueness or state rule."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)


class AuthError(AppError):
    """Authentication or authorization failure."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated", code: str = "auth_error"):
        super().__init__(message, code)


class PermissionDeniedError(AuthError):
    """Authenticated principal may not perform the operation."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class StoreUnavailableError(AppError):
    """The data store could not be reached or did not answer in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(
        self,
        message: str = "Service temporarily unavailable, please retry",
        code: str = "store_unavailable",
    ):
        super().__init__(message, code)


class InternalError(AppError):
    """Unexpected failure; details are logged, never returned."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: str = "internal_error",
    ):
        super().__init__(message, code)
