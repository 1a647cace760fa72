"""Unit tests for RequestContextMiddleware."""

import re

import pytest
from pytest_mock import MockerFixture
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from httpapi.api.constants import TRACE_ID_HEADER
from httpapi.api.middleware.request_context import RequestContextMiddleware
from httpapi.core.context import RequestContext
from tests.unit.api.asgi_helpers import RequestFactory


async def dummy_app(_scope: object, _receive: object, _send: object) -> None:
    """ASGI app that is never called directly."""


@pytest.mark.unit
class TestRequestContextMiddleware:
    """Test suite for RequestContextMiddleware."""

    async def test_generates_trace_id(self, make_request: RequestFactory) -> None:
        """Test a trace ID is generated when the client sends none."""
        middleware = RequestContextMiddleware(dummy_app)
        seen: list[str | None] = []

        async def call_next(_request: Request) -> Response:
            seen.append(RequestContext.get_trace_id())
            return PlainTextResponse("ok")

        response = await middleware.dispatch(make_request(), call_next)

        trace_id = response.headers[TRACE_ID_HEADER]
        assert re.fullmatch(r"[0-9a-f]{16}", trace_id)
        assert seen == [trace_id]

    async def test_uses_client_trace_id(self, make_request: RequestFactory) -> None:
        """Test the X-Correlation-ID request header is reused."""
        middleware = RequestContextMiddleware(dummy_app)

        async def call_next(_request: Request) -> Response:
            return PlainTextResponse("ok")

        request = make_request(headers={TRACE_ID_HEADER: "client-trace-1"})
        response = await middleware.dispatch(request, call_next)

        assert response.headers[TRACE_ID_HEADER] == "client-trace-1"
        assert RequestContext.get_trace_id() == "client-trace-1"

    async def test_binds_trace_id_to_logs(
        self, make_request: RequestFactory, mocker: MockerFixture
    ) -> None:
        """Test the trace ID is bound to Loguru for the request."""
        contextualize = mocker.patch(
            "httpapi.api.middleware.request_context.logger.contextualize"
        )
        middleware = RequestContextMiddleware(dummy_app)

        async def call_next(_request: Request) -> Response:
            return PlainTextResponse("ok")

        request = make_request(headers={TRACE_ID_HEADER: "abc"})
        await middleware.dispatch(request, call_next)

        contextualize.assert_called_once_with(trace_id="abc")
