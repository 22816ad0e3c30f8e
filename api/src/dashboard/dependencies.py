"""FastAPI dependencies for dashboards."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from src.dashboard.service import DashboardService


_dashboard_service_getter: Callable[[], DashboardService] | None = None


def set_dashboard_service_getter(getter: Callable[[], DashboardService]) -> None:
    """Set the dashboard service getter function."""
    global _dashboard_service_getter  # noqa: PLW0603 - Required for DI pattern
    _dashboard_service_getter = getter


def get_dashboard_service() -> DashboardService:
    """Get DashboardService instance from app state."""
    if _dashboard_service_getter is None:
        msg = "DashboardService not configured"
        raise RuntimeError(msg)
    return _dashboard_service_getter()


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
