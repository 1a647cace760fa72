"""Global exception handlers for FastAPI applications.

Every exception that escapes an endpoint is answered by ``write_error``, so
clients always get the same JSON error envelope and nothing is leaked to
untrusted clients. Logging happens in the presentation config's
``error_written`` callback once the response has been sent.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from httpapi.api.readwrite import write_error
from httpapi.core.exceptions import ApiError, PublicError

HTTP_422_UNPROCESSABLE_CONTENT = 422


async def api_error_handler(request: Request, exc: Exception) -> Response:
    """Handle ``ApiError`` exceptions raised by endpoints.

    Args:
        request: The request that caused the exception
        exc: The ApiError exception to handle

    Returns:
        Response: The JSON error response

    Raises:
        TypeError: If exc is not an ApiError instance
    """
    # Type narrowing - this handler only receives ApiError
    if not isinstance(exc, ApiError):
        raise TypeError(f"Expected ApiError, got {type(exc).__name__}")

    return write_error(request, exc)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI ``RequestValidationError`` as a public 422.

    The field errors are kept as the cause, so trusted clients see them in
    the ``detail`` field.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    field_errors = [
        ".".join(str(loc) for loc in error.get("loc", ())) for error in exc.errors()
    ]
    error = PublicError(
        "request validation failed",
        HTTP_422_UNPROCESSABLE_CONTENT,
        context={"fields": field_errors},
        cause=exc,
    )
    return write_error(request, error)


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette ``HTTPException``, whose status and detail are public.

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    response = write_error(request, exc)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any other exception as an internal server error."""
    return write_error(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
