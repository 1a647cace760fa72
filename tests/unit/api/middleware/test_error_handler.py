"""Unit tests for the global exception handlers."""

import orjson
import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from httpapi.api.middleware.error_handler import (
    api_error_handler,
    generic_exception_handler,
    http_exception_handler,
    register_exception_handlers,
    validation_error_handler,
)
from httpapi.core.exceptions import ApiError, NotFoundError
from tests.unit.api.asgi_helpers import RequestFactory


@pytest.mark.unit
class TestExceptionHandlers:
    """Test suite for the exception handlers."""

    async def test_api_error(self, make_request: RequestFactory) -> None:
        """Test ApiError is written with its public fields."""
        response = await api_error_handler(make_request(), NotFoundError("not found"))

        assert response.status_code == 404
        assert orjson.loads(response.body)["error"]["message"] == "not found"

    async def test_api_error_type_check(self, make_request: RequestFactory) -> None:
        """Test the handler refuses other exception types."""
        with pytest.raises(TypeError, match="Expected ApiError"):
            await api_error_handler(make_request(), ValueError("x"))

    async def test_validation_error(self, make_request: RequestFactory) -> None:
        """Test request validation errors are a public 422."""
        exc = RequestValidationError(
            [{"loc": ("query", "limit"), "msg": "not an int", "type": "int_parsing"}]
        )

        response = await validation_error_handler(make_request(), exc)

        assert response.status_code == 422
        assert orjson.loads(response.body)["error"] == {
            "message": "request validation failed",
            "status": 422,
        }

    async def test_validation_error_type_check(
        self, make_request: RequestFactory
    ) -> None:
        """Test the handler refuses other exception types."""
        with pytest.raises(TypeError, match="Expected RequestValidationError"):
            await validation_error_handler(make_request(), ValueError("x"))

    async def test_http_exception(self, make_request: RequestFactory) -> None:
        """Test HTTPException status, detail and headers are used."""
        exc = HTTPException(
            status_code=405, detail="Method Not Allowed", headers={"Allow": "GET"}
        )

        response = await http_exception_handler(make_request(), exc)

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"
        assert orjson.loads(response.body)["error"]["message"] == "Method Not Allowed"

    async def test_http_exception_type_check(self, make_request: RequestFactory) -> None:
        """Test the handler refuses other exception types."""
        with pytest.raises(TypeError, match="Expected HTTPException"):
            await http_exception_handler(make_request(), ValueError("x"))

    async def test_generic_exception(self, make_request: RequestFactory) -> None:
        """Test anything else is a generic 500 that leaks nothing."""
        response = await generic_exception_handler(
            make_request(), RuntimeError("password=hunter2")
        )

        assert response.status_code == 500
        assert b"hunter2" not in response.body


@pytest.mark.unit
class TestRegisterExceptionHandlers:
    """Test suite for register_exception_handlers."""

    def test_registers_all_handlers(self) -> None:
        """Test every handler is registered on the app."""
        app = FastAPI()

        register_exception_handlers(app)

        assert app.exception_handlers[ApiError] is api_error_handler
        assert app.exception_handlers[RequestValidationError] is validation_error_handler
        assert app.exception_handlers[HTTPException] is http_exception_handler
        assert app.exception_handlers[Exception] is generic_exception_handler
