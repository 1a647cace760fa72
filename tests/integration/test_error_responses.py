"""Integration tests for error responses across the whole stack."""

import re
from typing import Any

import orjson
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from httpapi.api.constants import TRACE_ID_HEADER
from httpapi.api.middleware.error_config import ErrorConfigMiddleware
from httpapi.api.middleware.error_handler import register_exception_handlers
from httpapi.api.middleware.request_context import RequestContextMiddleware
from httpapi.api.presentation import ErrorContent, ErrorPresentationConfig
from httpapi.core.config import get_settings
from httpapi.core.exceptions import NotFoundError


@pytest.mark.integration
class TestFrameworkErrors:
    """Errors raised by Starlette and FastAPI themselves."""

    async def test_unknown_route(self, client: AsyncClient) -> None:
        """Test unknown routes get the standard envelope."""
        response = await client.get("/no/such/route")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/json"
        assert response.json()["error"]["message"] == "Not Found"

    async def test_method_not_allowed(self, client: AsyncClient) -> None:
        """Test a wrong method is a 405 that keeps the Allow header."""
        response = await client.delete("/health")

        assert response.status_code == 405
        assert "GET" in response.headers["allow"]
        assert response.json()["error"]["status"] == 405

    async def test_request_validation(self, client: AsyncClient) -> None:
        """Test FastAPI parameter validation is a public 422."""
        response = await client.get("/typed", params={"count": "many"})

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "request validation failed"

    async def test_trace_id_format(self, client: AsyncClient) -> None:
        """Test generated trace IDs in error envelopes are 16 hex digits."""
        response = await client.get("/api/items/99")

        assert re.fullmatch(r"[0-9a-f]{16}", response.json()["error"]["trace"])


@pytest.mark.integration
class TestUnexpectedErrors:
    """Unhandled exceptions must never leak details to untrusted clients."""

    async def test_generic_500(self, client: AsyncClient) -> None:
        """Test an unexpected exception is a bare 500 with the trace."""
        response = await client.get("/boom", headers={TRACE_ID_HEADER: "boom-trace"})

        assert response.status_code == 500
        assert response.json() == {
            "error": {
                "message": "Internal Server Error",
                "status": 500,
                "trace": "boom-trace",
            }
        }
        assert "hunter2" not in response.text

    async def test_trusted_client_sees_detail(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a trusted host gets the full error text."""
        monkeypatch.setenv("ERROR_CONFIG__TRUSTED_HOSTS", '["127.0.0.1"]')
        get_settings.cache_clear()

        response = await client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["detail"] == "database password is hunter2"

    async def test_proxied_client_never_trusted(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a trusted host behind a proxy gets no detail."""
        monkeypatch.setenv("ERROR_CONFIG__TRUSTED_HOSTS", '["127.0.0.1"]')
        get_settings.cache_clear()

        response = await client.get("/boom", headers={"X-Forwarded-For": "203.0.113.7"})

        assert response.status_code == 500
        assert "detail" not in response.json()["error"]


@pytest.mark.integration
class TestErrorLogging:
    """The default error_written callback logs every error response."""

    async def test_client_error_logged(
        self, client: AsyncClient, log_records: list[dict[str, Any]]
    ) -> None:
        """Test a 404 is logged as a warning with the trace ID."""
        response = await client.get("/api/items/99")
        trace_id = response.headers[TRACE_ID_HEADER]

        records = [r for r in log_records if r["message"].startswith("Error response")]
        assert len(records) == 1
        assert records[0]["level"].name == "WARNING"
        assert records[0]["extra"]["trace_id"] == trace_id
        assert records[0]["extra"]["error_type"] == "NotFoundError"

    async def test_server_error_logged(
        self, client: AsyncClient, log_records: list[dict[str, Any]]
    ) -> None:
        """Test a 500 is logged as an error with the exception."""
        await client.get("/boom")

        records = [r for r in log_records if r["message"].startswith("Error response")]
        assert len(records) == 1
        assert records[0]["level"].name == "ERROR"
        assert isinstance(records[0]["exception"].value, RuntimeError)


@pytest.mark.integration
class TestCustomErrorConfig:
    """An application can replace any of the presentation callbacks."""

    async def test_custom_callbacks(self) -> None:
        """Test custom marshalling, trust and error_written are all used."""
        written: list[ErrorContent] = []

        config = ErrorPresentationConfig(
            get_trace=lambda _request: "custom-trace",
            is_trusted=lambda _request: True,
            marshal_content=lambda content: orjson.dumps(
                {"msg": content.message, "why": str(content.error)}
            ),
            error_written=lambda _request, content: written.append(content),
        )
        app = FastAPI()
        register_exception_handlers(app)
        app.add_middleware(ErrorConfigMiddleware, config=config)
        app.add_middleware(RequestContextMiddleware)

        @app.get("/missing")
        async def missing() -> None:
            raise NotFoundError("not found", context={"id": 3})

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        assert response.json() == {"msg": "not found", "why": "[NOT_FOUND] not found"}
        assert len(written) == 1
        assert written[0].trace == "custom-trace"
        assert isinstance(written[0].error, NotFoundError)
