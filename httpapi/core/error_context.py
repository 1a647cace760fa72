"""Sensitive data sanitization for error logging.

Errors reach the logs with far more detail than clients ever see: exception
attributes, request headers and caller-provided context. This module redacts
values whose key looks sensitive before any of that is bound to a log record.

Security considerations:
- Redaction is key-based; values are never inspected
- Original objects are left untouched, only the logged copies are sanitized
"""

from __future__ import annotations

import re
from re import Pattern
from typing import Any, Final

from httpapi.core.config import get_settings
from httpapi.core.constants import REDACTED

SENSITIVE_HEADERS: Final[frozenset[str]] = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
        "x-csrf-token",
    }
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|api[_-]?key|apikey|auth|credential|"
    r"private[_-]?key|session|ssn|cvv|card[_-]?number)",
    re.IGNORECASE,
)

# Nested structures deeper than this are replaced wholesale
MAX_DEPTH: Final[int] = 10

# Longest cause chain reported in a log record
MAX_CAUSE_CHAIN: Final[int] = 10


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the field matches the default pattern or one of the
            configured ``log_config.sensitive_fields``.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(
        sensitive.lower() in field_lower
        for sensitive in get_settings().log_config.sensitive_fields
    )


def sanitize_value(value: Any, field_name: str = "", depth: int = 0) -> Any:  # noqa: ANN401 - any loggable value
    """Return a copy of ``value`` with sensitive entries redacted."""
    if depth > MAX_DEPTH:
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, dict):
        return {k: sanitize_value(v, str(k), depth + 1) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_value(item, "", depth + 1) for item in value)

    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"

    return value


def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive HTTP headers."""
    return {
        k: REDACTED if k.lower() in SENSITIVE_HEADERS else v for k, v in headers.items()
    }


def cause_chain(error: BaseException) -> list[str]:
    """List the exception types from ``error`` down to its root cause."""
    chain: list[str] = []
    current: BaseException | None = error
    while current is not None and len(chain) < MAX_CAUSE_CHAIN:
        chain.append(type(current).__name__)
        current = current.__cause__
    return chain


def sanitize_error_context(
    error: BaseException, context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create sanitized error context for logging.

    Args:
        error: The exception being reported.
        context: Additional context to include (will be sanitized).

    Returns:
        dict[str, Any]: Context safe to bind to a log record.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "cause_chain": cause_chain(error),
    }

    if context:
        error_context.update(sanitize_value(context))

    # ApiError carries error_code, severity and caller context as attributes
    error_attrs = {
        k: v
        for k, v in getattr(error, "__dict__", {}).items()
        if not k.startswith("_") and k != "cause"
    }
    if error_attrs:
        error_context["error_attributes"] = sanitize_value(error_attrs)

    return error_context
