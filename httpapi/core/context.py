"""Request context management for trace IDs."""

import secrets
from contextvars import ContextVar

from httpapi.core.constants import TRACE_ID_BYTES

# Context variable for storing the trace ID across async boundaries
_trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


class RequestContext:
    """Manages request context using contextvars for async-safe storage.

    The trace ID stored here is what error responses report in their
    ``trace`` field, so that a client-visible error can be matched with the
    server logs for the same request.
    """

    @staticmethod
    def set_trace_id(trace_id: str) -> None:
        """Set the trace ID for the current context.

        Args:
            trace_id: The trace ID to store in the context.
        """
        _trace_id_var.set(trace_id)

    @staticmethod
    def get_trace_id() -> str | None:
        """Get the trace ID from the current context.

        Returns:
            str | None: The trace ID if set, None otherwise.
        """
        return _trace_id_var.get()

    @staticmethod
    def clear() -> None:
        """Clear all context variables."""
        _trace_id_var.set(None)


def generate_trace_id() -> str:
    """Generate a short random trace ID.

    Returns:
        str: 16 lowercase hex digits, e.g. ``a8845f4dc3792a63``.

    Examples:
        >>> len(generate_trace_id())
        16
    """
    return secrets.token_hex(TRACE_ID_BYTES)
