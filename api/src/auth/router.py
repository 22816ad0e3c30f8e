"""Authentication API endpoints.

Provides routes for:
- Registration and login (per principal kind)
- Current principal profile
- Admin directory listing and deactivation
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from src.auth.dependencies import AdminPrincipal, CurrentPrincipal
from src.auth.permissions import PrincipalKind
from src.auth.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    PrincipalListResponse,
    PrincipalResponse,
    RegisterRequest,
    RegisterResponse,
)
from src.auth.service import AuthService
from src.config.settings import get_settings
from src.core.schemas import ERROR_RESPONSES, ErrorResponse


router = APIRouter(prefix="/v1/auth", tags=["auth"])
admin_router = APIRouter(prefix="/v1/admin/principals", tags=["admin"])


# ==============================================================================
# Dependency for AuthService
# ==============================================================================

# Module-level reference to be overridden by main.py
_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called by main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603 - Required for DI pattern
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance via the getter set by main.py."""
    if _auth_service_getter is None:
        raise RuntimeError(
            "AuthService not configured - call set_auth_service_getter first"
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# ==============================================================================
# Public Endpoints (No Auth Required)
# ==============================================================================


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a student, instructor or admin account",
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        **ERROR_RESPONSES,
    },
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> RegisterResponse:
    """Create a principal of the requested kind with a hashed password."""
    principal = await auth_service.register(data)
    return RegisterResponse(id=principal.id)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and obtain an access token",
    responses=ERROR_RESPONSES,
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> LoginResponse:
    """Check credentials for the given kind and return profile plus token.

    The token's ``kind`` claim replaces any client-side notion of who is
    logged in; every protected endpoint authorizes from it.
    """
    principal = await auth_service.authenticate(data.kind, data.email, data.password)
    return LoginResponse(
        principal=PrincipalResponse.from_entity(principal),
        access_token=auth_service.issue_token(principal),
        expires_in=get_settings().auth_access_token_expire_minutes * 60,
    )


# ==============================================================================
# Authenticated Endpoints
# ==============================================================================


@router.get("/me", response_model=MeResponse, responses=ERROR_RESPONSES)
async def me(
    principal: CurrentPrincipal,
    auth_service: AuthServiceDep,
) -> MeResponse:
    """Profile of the principal behind the bearer token."""
    entity = await auth_service.get_principal_or_raise(principal.id)
    return MeResponse(principal=PrincipalResponse.from_entity(entity))


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.get("", response_model=PrincipalListResponse, responses=ERROR_RESPONSES)
async def list_principals(
    _admin: AdminPrincipal,
    auth_service: AuthServiceDep,
    kind: Annotated[PrincipalKind, Query()] = PrincipalKind.INSTRUCTOR,
) -> PrincipalListResponse:
    """List principals of one kind (instructors by default), ordered by email."""
    principals = await auth_service.list_principals(kind)
    return PrincipalListResponse(
        kind=kind,
        principals=[PrincipalResponse.from_entity(p) for p in principals],
        total=len(principals),
    )


@admin_router.post(
    "/{principal_id}/deactivate",
    response_model=MeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Principal not found"},
        **ERROR_RESPONSES,
    },
)
async def deactivate_principal(
    principal_id: UUID,
    _admin: AdminPrincipal,
    auth_service: AuthServiceDep,
) -> MeResponse:
    """Soft-deactivate a principal; they can no longer log in."""
    principal = await auth_service.deactivate(principal_id)
    return MeResponse(principal=PrincipalResponse.from_entity(principal))
