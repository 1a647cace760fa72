"""Error presentation policy.

Turns any exception into the content of a JSON error response without leaking
implementation details to the client:

1. The exception's ``__cause__`` chain is searched from the outside in for an
   error with public classification (``ApiError`` public fields, or a
   Starlette ``HTTPException``). Without one, the root cause is used.
2. The status is the public status if it lies in [400, 599], else 500.
3. The message is the public message, else the status reason phrase.
4. The code is the public code, if any.
5. The trace is whatever the configured trace getter returns.
6. The exception itself is only attached for trusted clients.

How the content is marshalled, who is trusted, where trace IDs come from and
what happens after an error has been written are all pluggable through
``ErrorPresentationConfig``. Middleware attaches a config to each request
(see ``ErrorConfigMiddleware``); unset callbacks fall back to the defaults.
"""

from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import orjson
from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator
from starlette.exceptions import HTTPException
from starlette.requests import Request

from httpapi.api.constants import FORWARDED_HEADERS
from httpapi.api.schemas.errors import ErrorDetail, ErrorEnvelope
from httpapi.core.config import get_settings
from httpapi.core.context import RequestContext
from httpapi.core.error_context import sanitize_error_context, sanitize_headers
from httpapi.core.exceptions import ApiError

# Attribute of request.state that ErrorConfigMiddleware sets
ERROR_CONFIG_STATE_KEY = "error_config"

HTTP_500_INTERNAL_SERVER_ERROR = 500


class ErrorContent(BaseModel):
    """What an error response tells the client.

    ``error`` is only filled in before marshalling when the client is trusted.
    After the response has been sent it always holds the original exception,
    for the benefit of the ``error_written`` callback.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    message: str = ""
    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    code: str | None = None
    trace: str | None = None
    error: BaseException | None = None

    @field_validator("status_code")
    @classmethod
    def valid_status(cls, v: int) -> int:
        """Force anything outside the HTTP status range to 500."""
        return v if 100 <= v <= 599 else HTTP_500_INTERNAL_SERVER_ERROR


class ErrorPresentationConfig(BaseModel):
    """Callbacks that customise how errors are presented.

    Attributes:
        get_trace: Returns an identifier that correlates the response with
            logs or traces.
        is_trusted: Decides whether the client may see full error details.
        marshal_content: Serializes the content into the response body.
        error_written: Called after the response has been sent.
    """

    model_config = ConfigDict(frozen=True)

    get_trace: Callable[[Request], str] | None = None
    is_trusted: Callable[[Request], bool] | None = None
    marshal_content: Callable[[ErrorContent], bytes] | None = None
    error_written: Callable[[Request, ErrorContent], None] | None = None

    def resolved(self) -> "ErrorPresentationConfig":
        """Return a copy with every unset callback replaced by its default."""
        return ErrorPresentationConfig(
            get_trace=self.get_trace or DEFAULT_CONFIG.get_trace,
            is_trusted=self.is_trusted or DEFAULT_CONFIG.is_trusted,
            marshal_content=self.marshal_content or DEFAULT_CONFIG.marshal_content,
            error_written=self.error_written or DEFAULT_CONFIG.error_written,
        )


def default_get_trace(request: Request) -> str:
    """Return the trace ID set by ``RequestContextMiddleware``, if any."""
    _ = request
    return RequestContext.get_trace_id() or ""


def default_is_trusted(request: Request) -> bool:
    """Trust clients listed in ``error_config.trusted_hosts``.

    Requests that went through a reverse proxy are never trusted, since the
    client address is then the proxy's.
    """
    trusted_hosts = get_settings().error_config.trusted_hosts
    if not trusted_hosts or request.client is None:
        return False
    if any(header in request.headers for header in FORWARDED_HEADERS):
        return False
    return request.client.host in trusted_hosts


def default_marshal_content(content: ErrorContent) -> bytes:
    """Serialize the content as the standard, indented error envelope."""
    detail = str(content.error) if content.error is not None else ""
    envelope = ErrorEnvelope(
        error=ErrorDetail(
            message=content.message,
            status=content.status_code,
            code=content.code or None,
            trace=content.trace or None,
            detail=detail or None,
        )
    )
    # Indented to make errors easy to read with curl
    return orjson.dumps(
        envelope.model_dump(exclude_none=True),
        option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE,
    )


def default_error_written(request: Request, content: ErrorContent) -> None:
    """Log every error response, with the full error and sanitized context."""
    error_context: dict[str, Any] = {}
    if content.error is not None:
        error_context = sanitize_error_context(
            content.error,
            {
                "request_method": request.method,
                "request_path": request.url.path,
                "request_headers": sanitize_headers(dict(request.headers)),
            },
        )

    if content.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.opt(exception=content.error).error(
            "Error response {status_code}: {message}",
            status_code=content.status_code,
            message=content.message,
            trace_id=content.trace,
            **error_context,
        )
    else:
        logger.warning(
            "Error response {status_code}: {message}",
            status_code=content.status_code,
            message=content.message,
            trace_id=content.trace,
            **error_context,
        )


DEFAULT_CONFIG = ErrorPresentationConfig(
    get_trace=default_get_trace,
    is_trusted=default_is_trusted,
    marshal_content=default_marshal_content,
    error_written=default_error_written,
)


def config_from_request(request: Request) -> ErrorPresentationConfig:
    """Return the config attached to ``request``, resolved against defaults."""
    config = getattr(request.state, ERROR_CONFIG_STATE_KEY, None)
    if not isinstance(config, ErrorPresentationConfig):
        config = DEFAULT_CONFIG
    return config.resolved()


def _is_public(error: BaseException) -> bool:
    if isinstance(error, ApiError):
        return error.is_public
    return isinstance(error, HTTPException)


def presented_cause(error: BaseException) -> BaseException:
    """Return the error in the cause chain that decides what clients see."""
    current = error
    seen = {id(current)}
    while not _is_public(current):
        cause = current.__cause__
        if cause is None or id(cause) in seen:
            break
        seen.add(id(cause))
        current = cause
    return current


def _public_status(cause: BaseException) -> int | None:
    if isinstance(cause, ApiError):
        return cause.public_status
    if isinstance(cause, HTTPException):
        return cause.status_code
    return None


def _public_message(cause: BaseException) -> str | None:
    if isinstance(cause, ApiError):
        return cause.public_message
    if isinstance(cause, HTTPException) and isinstance(cause.detail, str):
        return cause.detail
    return None


def _public_code(cause: BaseException) -> str | None:
    if isinstance(cause, ApiError):
        return cause.public_code
    return None


def _status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


def build_error_content(
    error: BaseException, request: Request, config: ErrorPresentationConfig
) -> ErrorContent:
    """Work out what to tell the client about ``error``.

    Args:
        error: The exception to present.
        request: The request being answered.
        config: A resolved presentation config.

    Returns:
        ErrorContent: The content to marshal. ``error`` is set only if the
            client is trusted.
    """
    cause = presented_cause(error)

    status_code = _public_status(cause) or HTTP_500_INTERNAL_SERVER_ERROR
    if not 400 <= status_code <= 599:
        status_code = HTTP_500_INTERNAL_SERVER_ERROR

    content = ErrorContent(
        message=_public_message(cause) or _status_text(status_code),
        status_code=status_code,
        code=_public_code(cause),
        trace=config.get_trace(request) if config.get_trace else None,
    )

    if config.is_trusted and config.is_trusted(request):
        content.error = error

    return content
