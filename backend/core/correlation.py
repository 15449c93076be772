"""
Correlation ID generation and context management.

Each request gets a short ID that shows up in the X-Correlation-ID response
header, in every log line of that request and on Sentry events, so a visitor
reporting a failed submission can be matched to the server-side error.
"""

import re
import uuid
from contextvars import ContextVar

# Context variable for request-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Incoming IDs are echoed back in headers and logs, so only accept plain tokens
_INCOMING_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Returns:
        8-character hexadecimal string (e.g., "abc123de").
    """
    return uuid.uuid4().hex[:8]


def resolve_correlation_id(incoming: str | None) -> str:
    """
    Reuse a caller-supplied correlation ID when it is a safe token.

    Args:
        incoming: Value of the X-Correlation-ID request header, if any.

    Returns:
        The incoming ID, or a freshly generated one.
    """
    if incoming and _INCOMING_ID_PATTERN.match(incoming):
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Current request's correlation ID, or empty string outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)
