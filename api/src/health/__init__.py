"""Health check endpoints."""

from .router import router, set_store_session_getter


__all__ = ["router", "set_store_session_getter"]
