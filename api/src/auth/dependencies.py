"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current principal extraction from the bearer token
- Kind-based access control
- Acting-for-student / viewing-instructor checks
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from jose import JWTError
from pydantic import BaseModel

from src.auth.permissions import PrincipalKind, can_act_for_student, can_view_instructor
from src.auth.security import decode_access_token
from src.core.context import set_principal
from src.core.exceptions import AuthError, PermissionDeniedError


class AuthenticatedPrincipal(BaseModel):
    """Claims of a validated access token."""

    id: UUID
    kind: PrincipalKind
    email: str


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedPrincipal:
    """Validate the access token and return its principal.

    Raises:
        AuthError: If the token is missing, invalid or expired
    """
    if not token:
        raise AuthError("Access token not provided", "missing_token")

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise AuthError("Invalid or expired token", "invalid_token") from e

    principal = AuthenticatedPrincipal(
        id=payload["sub"],
        kind=payload["kind"],
        email=payload.get("email", ""),
    )
    set_principal(principal.id, principal.kind.value)
    return principal


def require_kind(*allowed: PrincipalKind):
    """Create dependency requiring one of the given principal kinds.

    Example:
        @router.get("/admin-only")
        async def admin_endpoint(
            principal: Annotated[
                AuthenticatedPrincipal, Depends(require_kind(PrincipalKind.ADMIN))
            ],
        ): ...
    """

    async def kind_checker(
        principal: Annotated[AuthenticatedPrincipal, Depends(get_current_principal)],
    ) -> AuthenticatedPrincipal:
        if principal.kind not in allowed:
            raise PermissionDeniedError
        return principal

    return kind_checker


def ensure_can_act_for_student(
    principal: AuthenticatedPrincipal, student_id: UUID
) -> None:
    """Raise unless the principal is that student or an admin."""
    if not can_act_for_student(principal.kind, principal.id, student_id):
        raise PermissionDeniedError("You may only act on your own enrollments")


def ensure_can_view_instructor(
    principal: AuthenticatedPrincipal, instructor_id: UUID
) -> None:
    """Raise unless the principal is that instructor or an admin."""
    if not can_view_instructor(principal.kind, principal.id, instructor_id):
        raise PermissionDeniedError("You may only view your own courses")


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentPrincipal = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]
AdminPrincipal = Annotated[
    AuthenticatedPrincipal, Depends(require_kind(PrincipalKind.ADMIN))
]
StudentOrAdmin = Annotated[
    AuthenticatedPrincipal,
    Depends(require_kind(PrincipalKind.STUDENT, PrincipalKind.ADMIN)),
]
InstructorOrAdmin = Annotated[
    AuthenticatedPrincipal,
    Depends(require_kind(PrincipalKind.INSTRUCTOR, PrincipalKind.ADMIN)),
]
