"""Request context middleware for trace IDs.

Each request gets a trace ID, taken from the ``X-Correlation-ID`` request
header when the caller sends one and generated otherwise. The ID is:

- stored in a context variable (see ``RequestContext``), which is where error
  responses take their ``trace`` field from
- bound to every loguru record logged while the request is processed
- echoed back in the ``X-Correlation-ID`` response header
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from httpapi.api.constants import TRACE_ID_HEADER
from httpapi.core.context import RequestContext, generate_trace_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage the trace ID of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with its trace ID set.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with the trace ID header.
        """
        trace_id = request.headers.get(TRACE_ID_HEADER) or generate_trace_id()

        RequestContext.set_trace_id(trace_id)

        # contextualize removes the binding once the request is done
        with logger.contextualize(trace_id=trace_id):
            response = await call_next(request)
            response.headers[TRACE_ID_HEADER] = trace_id
            return response
