"""Request context management using contextvars.

Every request carries a request ID and, when known, the trace ID from the
upstream proxy and the ID of the moderator acting on it. Log processors read
these values so handlers never have to pass them around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
moderator_id_var: ContextVar[str | None] = ContextVar("moderator_id", default=None)
client_address_var: ContextVar[str | None] = ContextVar(
    "client_address", default=None
)


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


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_moderator_id() -> str | None:
    """Get the ID of the moderator acting in the current request."""
    return moderator_id_var.get()


def set_moderator_id(moderator_id: str | None) -> None:
    """Record the authenticated moderator for subsequent log entries."""
    moderator_id_var.set(str(moderator_id) if moderator_id is not None else None)


def get_client_address() -> str | None:
    return client_address_var.get()


def set_client_address(address: str | None) -> None:
    client_address_var.set(address)


def get_context() -> dict[str, Any]:
    """Get the populated context variables as a dictionary."""
    values = {
        "request_id": get_request_id(),
        "trace_id": get_trace_id(),
        "moderator_id": get_moderator_id(),
        "client_address": get_client_address(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values never leak into the next one.
    """
    request_id_var.set("")
    trace_id_var.set(None)
    moderator_id_var.set(None)
    client_address_var.set(None)
