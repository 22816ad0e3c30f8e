"""Request context management using contextvars.

Each request gets a unique ID plus optional principal and trace information
that every log line emitted during the request picks up automatically.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
principal_id_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
principal_kind_var: ContextVar[str | None] = ContextVar(
    "principal_kind", default=None
)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_principal_id() -> str | None:
    """Get the authenticated principal ID, if any."""
    return principal_id_var.get()


def set_principal(principal_id: str | UUID | None, kind: str | None = None) -> None:
    """Bind the authenticated principal to the current context."""
    principal_id_var.set(str(principal_id) if principal_id is not None else None)
    principal_kind_var.set(kind)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    principal_id = get_principal_id()
    if principal_id:
        context["principal_id"] = principal_id
        context["principal_kind"] = principal_kind_var.get()

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values never leak into the next one.
    """
    request_id_var.set("")
    principal_id_var.set(None)
    principal_kind_var.set(None)
    trace_id_var.set(None)
