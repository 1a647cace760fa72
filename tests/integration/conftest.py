"""Shared fixtures for integration tests.

Requests go through the full ASGI stack of the demo application (middleware,
exception handlers and routes) using httpx's ASGITransport.
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from httpapi.api.main import create_app
from httpapi.core.config import Settings


@pytest.fixture
def app() -> FastAPI:
    """Create a fresh demo application with an empty item store.

    A ``/boom`` route that fails unexpectedly and a ``/typed`` route with a
    validated query parameter are added for error handling tests.
    """
    application = create_app(Settings())

    @application.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database password is hunter2")

    @application.get("/typed")
    async def typed(count: int) -> dict[str, int]:
        return {"count": count}

    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Provide an HTTP client bound to the application.

    Unhandled exceptions are re-raised by Starlette after the error response
    has been sent; ``raise_app_exceptions=False`` lets tests see the response.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
