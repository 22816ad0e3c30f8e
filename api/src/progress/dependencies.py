"""FastAPI dependencies for progress tracking."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from src.progress.service import ProgressService


_progress_service_getter: Callable[[], ProgressService] | None = None


def set_progress_service_getter(getter: Callable[[], ProgressService]) -> None:
    """Set the progress service getter function."""
    global _progress_service_getter  # noqa: PLW0603 - Required for DI pattern
    _progress_service_getter = getter


def get_progress_service() -> ProgressService:
    """Get ProgressService instance from app state."""
    if _progress_service_getter is None:
        msg = "ProgressService not configured"
        raise RuntimeError(msg)
    return _progress_service_getter()


ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]
