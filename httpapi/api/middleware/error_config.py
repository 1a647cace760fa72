"""Middleware that attaches an error presentation config to every request.

``write_error`` reads the attached config, so an application customises how
its errors are marshalled, logged and traced in one place::

    app.add_middleware(
        ErrorConfigMiddleware,
        config=ErrorPresentationConfig(is_trusted=lambda request: True),
    )

Callbacks left unset fall back to the defaults.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from httpapi.api.presentation import (
    DEFAULT_CONFIG,
    ERROR_CONFIG_STATE_KEY,
    ErrorPresentationConfig,
)


class ErrorConfigMiddleware(BaseHTTPMiddleware):
    """Store ``config`` on ``request.state`` for ``write_error`` to find.

    Args:
        app: The ASGI application.
        config: The presentation config, defaults to ``DEFAULT_CONFIG``.
    """

    def __init__(
        self, app: ASGIApp, config: ErrorPresentationConfig | None = None
    ) -> None:
        super().__init__(app)
        self.config = config or DEFAULT_CONFIG

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Attach the config, then process the request."""
        setattr(request.state, ERROR_CONFIG_STATE_KEY, self.config)
        return await call_next(request)
