"""Context management for structured logging and tracing.

This module provides context variables for propagating request context
(request id, authenticated user, resource being operated on) through the
async call chain so every log line of a request carries it.
"""

import contextvars
from contextlib import contextmanager
from typing import Optional, Any, Dict
from opentelemetry import trace

# Context variables for request/operation tracking
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
user_id_var: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar(
    "user_id", default=None
)
user_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "user_name", default=None
)
resource_kind_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "resource_kind", default=None
)
resource_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "resource_id", default=None
)
action_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "action", default=None
)

_VARS: Dict[str, contextvars.ContextVar] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "user_name": user_name_var,
    "resource_kind": resource_kind_var,
    "resource_id": resource_id_var,
    "action": action_var,
}

# Span attribute names for context keys
_SPAN_ATTRIBUTES = {
    "user_id": "user.id",
    "user_name": "user.name",
    "resource_kind": "resource.kind",
    "resource_id": "resource.id",
    "action": "action",
}


def set_context(
    request_id: Optional[str] = None,
    user_id: Optional[int] = None,
    user_name: Optional[str] = None,
    resource_kind: Optional[str] = None,
    resource_id: Optional[str] = None,
    action: Optional[str] = None,
) -> None:
    """Set context variables. ``None`` leaves a variable untouched.

    Args:
        request_id: Unique request identifier
        user_id: User database ID
        user_name: Username
        resource_kind: 'phone' or 'ip'
        resource_id: Identifier of the phone or IP
        action: Operation being performed (e.g., 'allocation.create')
    """
    values = {
        "request_id": request_id,
        "user_id": user_id,
        "user_name": user_name,
        "resource_kind": resource_kind,
        "resource_id": resource_id,
        "action": action,
    }
    for key, value in values.items():
        if value is not None:
            _VARS[key].set(value)


def get_context() -> Dict[str, Any]:
    """Get all current context values as a dictionary.

    Returns:
        Dictionary with all non-None context values
    """
    context = {}
    for key, var in _VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def get_request_id() -> Optional[str]:
    """Get current request ID."""
    return request_id_var.get()


def clear_context() -> None:
    """Clear all context variables."""
    for var in _VARS.values():
        var.set(None)


@contextmanager
def operation_context(action: str, **values: Any):
    """Context manager for setting operation context with automatic cleanup.

    The values are also recorded on the current span when one is recording.

    Example:
        with operation_context("phone.delete", resource_kind="phone", resource_id=pid):
            logger.info("Deleting phone")
    """
    old_context = get_context()

    try:
        set_context(action=action, **values)

        span = trace.get_current_span()
        if span.is_recording():
            for key, value in get_context().items():
                attribute = _SPAN_ATTRIBUTES.get(key)
                if attribute:
                    span.set_attribute(attribute, value)

        yield

    finally:
        clear_context()
        for key, value in old_context.items():
            _VARS[key].set(value)


def get_trace_context() -> Dict[str, str]:
    """Get current OpenTelemetry trace context.

    Returns:
        Dictionary with trace_id and span_id (if available)
    """
    context = {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

    return context
