"""Demo FastAPI application built with httpapi.

A tiny in-memory item store that shows the intended usage of the library:

- ``read_request`` to decode a bounded, possibly compressed JSON body
- ``query`` with a single ``err()`` checkpoint for the query string
- ``write_response`` and ``write_error`` for output
- ``handler`` for endpoints that just return a value or raise

Middleware are executed in reverse order of registration, so the request
context (trace IDs) is set up before the error config is attached.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, Field

from httpapi.api.middleware.error_config import ErrorConfigMiddleware
from httpapi.api.middleware.error_handler import register_exception_handlers
from httpapi.api.middleware.request_context import RequestContextMiddleware
from httpapi.api.query import query
from httpapi.api.readwrite import handler, read_request, write_error, write_response
from httpapi.core.config import Settings, get_settings
from httpapi.core.exceptions import NotFoundError
from httpapi.core.logging import setup_logging

DEFAULT_PAGE_SIZE = 100


class NewItem(BaseModel):
    """Body of ``POST /api/items``."""

    name: str = Field(..., min_length=1)
    quantity: int = Field(default=0, ge=0)


class Item(NewItem):
    """An item as stored and returned."""

    id: int
    created: datetime


class ItemStore:
    """In-memory item storage, one per application."""

    def __init__(self) -> None:
        self.items: dict[int, Item] = {}
        self._next_id = 1

    def add(self, new_item: NewItem) -> Item:
        item = Item(
            id=self._next_id,
            created=datetime.now(UTC),
            **new_item.model_dump(),
        )
        self.items[item.id] = item
        self._next_id += 1
        return item

    def get(self, item_id: int) -> Item | None:
        return self.items.get(item_id)


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Log application start-up and shutdown."""
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )
    yield
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the demo application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    # No debug flag: Starlette would answer unhandled errors with a traceback page
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.state.store = ItemStore()

    register_exception_handlers(application)

    # 2. Error presentation config for write_error
    application.add_middleware(ErrorConfigMiddleware)

    # 1. Request context (creates trace IDs)
    application.add_middleware(RequestContextMiddleware)

    @application.get("/health")
    async def health(request: Request) -> Response:
        """Health check endpoint for monitoring and container orchestration."""
        return write_response(request, {"status": "healthy"})

    @application.post("/api/items")
    async def create_item(request: Request) -> Response:
        """Store the item in the request body and return it."""
        new_item = await read_request(request, NewItem)
        return write_response(request, request.app.state.store.add(new_item))

    @application.get("/api/items")
    async def list_items(request: Request) -> Response:
        """List items, filtered by ``name``, ``since`` and ``limit``."""
        q = query(request)
        name = q.get_string("name")
        since = q.get_time("since")
        limit, has_limit = q.lookup_int("limit")
        if err := q.err():
            return write_error(request, err)

        items = [
            item
            for item in request.app.state.store.items.values()
            if (not name or item.name == name)
            and (since is None or item.created >= since)
        ]
        page_size = max(limit, 0) if has_limit else DEFAULT_PAGE_SIZE
        return write_response(request, items[:page_size])

    @application.get("/api/items/{item_id}", response_model=None)
    @handler
    async def get_item(request: Request) -> Item:
        """Return one item, or a 404 error."""
        try:
            item_id = int(request.path_params["item_id"])
        except ValueError as exc:
            raise NotFoundError("item not found", code="ITEM404") from exc
        item = request.app.state.store.get(item_id)
        if item is None:
            raise NotFoundError("item not found", code="ITEM404")
        return item

    return application


app = create_app()
