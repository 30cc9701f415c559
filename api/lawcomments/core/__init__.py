# Core infrastructure
from lawcomments.core.context import (
    clear_context,
    get_client_address,
    get_context,
    get_moderator_id,
    get_request_id,
    get_trace_id,
    set_client_address,
    set_moderator_id,
    set_request_id,
    set_trace_id,
)
from lawcomments.core.logging import configure_structlog, get_logger
from lawcomments.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_client_address",
    "get_context",
    "get_logger",
    "get_moderator_id",
    "get_request_id",
    "get_trace_id",
    "set_client_address",
    "set_moderator_id",
    "set_request_id",
    "set_trace_id",
]
