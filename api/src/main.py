"""LMS Ledger API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from redis import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.router import admin_router as principals_admin_router
from src.auth.router import router as auth_router
from src.auth.service import AuthService
from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.exceptions import AppError, StoreUnavailableError
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.core.schemas import ErrorDetail, ErrorResponse
from src.courses.router import admin_router as courses_admin_router
from src.courses.router import router as courses_router
from src.courses.service import CourseService
from src.dashboard.router import admin_router as reports_admin_router
from src.dashboard.router import instructor_router
from src.dashboard.router import router as dashboard_router
from src.dashboard.service import DashboardService
from src.enrollments.router import router as enrollments_router
from src.enrollments.service import EnrollmentService
from src.health import router as health_router
from src.progress.router import router as progress_router
from src.progress.service import ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    auth_service: AuthService | None = None
    course_service: CourseService | None = None
    enrollment_service: EnrollmentService | None = None
    progress_service: ProgressService | None = None
    dashboard_service: DashboardService | None = None


app_state = AppState()


def _require(service: Any, name: str) -> Any:
    # Services are missing only when the store was unreachable at startup
    if service is None:
        logger.warning("service_not_initialized", service=name)
        raise StoreUnavailableError
    return service


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    return _require(app_state.auth_service, "auth")


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    return _require(app_state.course_service, "courses")


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance from app state."""
    return _require(app_state.enrollment_service, "enrollments")


def get_progress_service() -> ProgressService:
    """Get ProgressService instance from app state."""
    return _require(app_state.progress_service, "progress")


def get_dashboard_service() -> DashboardService:
    """Get DashboardService instance from app state."""
    return _require(app_state.dashboard_service, "dashboard")


def get_store_session() -> Any:
    """Live Cassandra session, or None before startup completed."""
    return app_state.cassandra_session


def build_services(session: Any, keyspace: str, redis_client: Any = None) -> None:
    """Wire every service onto ``app_state``."""
    app_state.cassandra_session = session
    app_state.auth_service = AuthService(session=session, keyspace=keyspace)
    app_state.course_service = CourseService(
        session=session,
        keyspace=keyspace,
        auth_service=app_state.auth_service,
        redis=redis_client,
    )
    app_state.enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        course_service=app_state.course_service,
    )
    app_state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        enrollment_service=app_state.enrollment_service,
        course_service=app_state.course_service,
    )
    app_state.dashboard_service = DashboardService(
        enrollment_service=app_state.enrollment_service,
        course_service=app_state.course_service,
        auth_service=app_state.auth_service,
    )
    logger.info("services_initialized", cache_enabled=redis_client is not None)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is non-critical: only the catalog cache depends on it
    redis_client = None
    try:
        redis_client = await init_redis()
    except (RedisError, OSError) as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - catalog cache disabled",
        )

    try:
        session = await init_async_cassandra()
        build_services(session, settings.cassandra_keyspace, redis_client)
    except Exception as e:
        # Requests get 503 and /health/ready reports unavailable until restart
        logger.error(
            "database_init_failed",
            error_type=type(e).__name__,
            error=str(e),
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def _error_body(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    retryable: bool = False,
    details: list[ErrorDetail] | None = None,
) -> ORJSONResponse:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    body = ErrorResponse(
        error=code,
        message=message,
        status_code=status_code,
        retryable=retryable,
        request_id=request_id,
        details=details,
    )
    return ORJSONResponse(status_code=status_code, content=body.model_dump())


_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "auth_error",
    status.HTTP_403_FORBIDDEN: "permission_denied",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course enrollment, payment and progress ledger API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Render domain errors with their stable code."""
        log = (
            logger.error
            if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else logger.warning
        )
        log(
            "app_error",
            error=exc.code,
            status_code=exc.status_code,
            retryable=exc.retryable,
            path=request.url.path,
            method=request.method,
        )
        return _error_body(
            request, exc.code, exc.message, exc.status_code, retryable=exc.retryable
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Routing errors (unknown path, wrong method)."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        internal = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        return _error_body(
            request,
            "internal_error"
            if internal
            else _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
            "Internal server error" if internal else str(exc.detail),
            exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Schema validation failures become ``invalid_input`` with field details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return _error_body(
            request,
            "invalid_input",
            "Validation error",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=[
                ErrorDetail(
                    field=".".join(str(loc) for loc in err.get("loc", [])),
                    message=err.get("msg", "Invalid value"),
                )
                for err in exc.errors()
            ],
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all: details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_body(
            request,
            "internal_error",
            "An unexpected error occurred. Please try again later.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(principals_admin_router)
    app.include_router(courses_router)
    app.include_router(courses_admin_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(dashboard_router)
    app.include_router(instructor_router)
    app.include_router(reports_admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LMS Ledger API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from src.auth.router import set_auth_service_getter  # noqa: E402
from src.courses.dependencies import set_course_service_getter  # noqa: E402
from src.dashboard.dependencies import set_dashboard_service_getter  # noqa: E402
from src.enrollments.dependencies import set_enrollment_service_getter  # noqa: E402
from src.health import set_store_session_getter  # noqa: E402
from src.progress.dependencies import set_progress_service_getter  # noqa: E402


set_auth_service_getter(get_auth_service)
set_course_service_getter(get_course_service)
set_enrollment_service_getter(get_enrollment_service)
set_progress_service_getter(get_progress_service)
set_dashboard_service_getter(get_dashboard_service)
set_store_session_getter(get_store_session)

app = create_app()
