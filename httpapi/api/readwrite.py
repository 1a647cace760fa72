"""Reading JSON requests and writing JSON responses.

These are the functions request handlers call directly:

- ``read_request`` decodes a (possibly compressed) JSON request body
- ``write_response`` encodes a value as a (possibly gzipped) JSON response
- ``write_error`` turns any exception into a safe JSON error response
- ``handler`` wraps an endpoint so that it can simply return or raise
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response

from httpapi.api.constants import JSON_CONTENT_TYPE
from httpapi.api.payload import PayloadBuffer, PayloadResponse
from httpapi.api.presentation import (
    HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorContent,
    ErrorPresentationConfig,
    build_error_content,
    config_from_request,
)
from httpapi.core.exceptions import ApiError, PublicError

type Endpoint = Callable[[Request], Awaitable[Any]]


async def read_request[T](
    request: Request, target: type[T], *, max_length: int | None = None
) -> T:
    """Read the request body as JSON and decode it as ``target``.

    A ``Content-Encoding: gzip`` or ``deflate`` header is honoured even
    though HTTP does not define it for requests.

    Args:
        request: The incoming request.
        target: The type to decode into, typically a pydantic model.
        max_length: Size limit for the body, before and after decompression.
            Defaults to ``payload_config.max_request_length``.

    Returns:
        T: The decoded body.

    Raises:
        BadRequestError: If the body cannot be read, decompressed or decoded.
        PayloadTooLargeError: If the body is too large.
    """
    payload = PayloadBuffer()
    await payload.read_request(request, max_length=max_length)
    return payload.unmarshal_to(target, max_length=max_length)


def write_response(
    request: Request,
    value: object,
    *,
    config: ErrorPresentationConfig | None = None,
) -> Response:
    """Build a JSON response for ``value``.

    The body is gzipped when the client accepts it and it saves bytes. An
    exception passed as ``value``, or any failure while encoding, produces an
    error response instead; this function never raises.

    Args:
        request: The request being answered.
        value: Anything orjson can encode, including pydantic models.
        config: Error presentation config for failures, overriding the one
            attached to the request.

    Returns:
        Response: A ``PayloadResponse``, or an error response.
    """
    if isinstance(value, BaseException):
        return write_error(request, value, config=config)

    payload = PayloadBuffer()
    try:
        payload.marshal_from(value)
        payload.compress_response(request)
    except ApiError as exc:
        return write_error(request, exc, config=config)

    return PayloadResponse(payload)


async def _error_written(
    config: ErrorPresentationConfig,
    request: Request,
    content: ErrorContent,
    error: BaseException,
) -> None:
    content.error = error
    if config.error_written is not None:
        config.error_written(request, content)


def write_error(
    request: Request,
    exc: BaseException | None,
    *,
    config: ErrorPresentationConfig | None = None,
) -> Response:
    """Build a JSON error response for ``exc``.

    Only information classified as public is shown, except to trusted clients
    who also get the full error text. Once the response has been sent, or
    sending it has failed, the config's ``error_written`` callback is called
    with the original error.

    Args:
        request: The request being answered.
        exc: The error to report. None is reported as a generic 500.
        config: Presentation config. Defaults to the config attached by
            ``ErrorConfigMiddleware``, else the built-in defaults.

    Returns:
        Response: The error response.
    """
    if exc is None:
        exc = PublicError("no information available", HTTP_500_INTERNAL_SERVER_ERROR)

    config = config.resolved() if config is not None else config_from_request(request)

    content = build_error_content(exc, request, config)
    body = config.marshal_content(content) if config.marshal_content else b""

    return PayloadResponse(
        PayloadBuffer(body, content_type=JSON_CONTENT_TYPE),
        status_code=content.status_code,
        headers={"X-Content-Type-Options": "nosniff"},
        background=BackgroundTask(_error_written, config, request, content, exc),
    )


def handler(endpoint: Endpoint) -> Callable[[Request], Awaitable[Response]]:
    """Turn ``async (request) -> value`` into a Starlette endpoint.

    The returned value is written with ``write_response``, and anything the
    endpoint raises with ``write_error``. An endpoint that returns its own
    ``Response`` has it passed through untouched.

    Example:
        >>> @handler
        ... async def get_item(request: Request) -> Item:
        ...     item = store.get(request.path_params["id"])
        ...     if item is None:
        ...         raise NotFoundError("item not found")
        ...     return item
    """

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        try:
            result = await endpoint(request)
        except Exception as exc:  # noqa: BLE001 - every failure becomes a response
            return write_error(request, exc)
        if isinstance(result, Response):
            return result
        return write_response(request, result)

    return wrapper
