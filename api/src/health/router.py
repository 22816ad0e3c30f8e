"""Health check endpoints."""

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import ORJSONResponse

from src.config import get_settings
from src.core.exceptions import AppError
from src.core.logging import get_logger
from src.core.store import execute


logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_PING_CQL = "SELECT release_version FROM system.local"
_PING_TIMEOUT_SECONDS = 2.0

_store_session_getter: Callable[[], Any] | None = None


def set_store_session_getter(getter: Callable[[], Any]) -> None:
    """Set the function returning the live Cassandra session (or None)."""
    global _store_session_getter  # noqa: PLW0603 - Required for DI pattern
    _store_session_getter = getter


async def _store_reachable() -> bool:
    session = _store_session_getter() if _store_session_getter else None
    if session is None:
        return False
    try:
        await execute(session, _PING_CQL, timeout=_PING_TIMEOUT_SECONDS)
    except AppError as e:
        logger.warning("readiness_store_ping_failed", error=e.code)
        return False
    return True


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> ORJSONResponse:
    """Readiness probe - 503 until the store answers a ping."""
    settings = get_settings()
    store_ok = await _store_reachable()
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if store_ok
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if store_ok else "unavailable",
            "store": "ok" if store_ok else "unreachable",
            "environment": settings.environment,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
