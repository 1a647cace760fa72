"""Unit tests for request context management."""

import asyncio
import re

import pytest

from httpapi.core.context import RequestContext, generate_trace_id


@pytest.mark.unit
class TestRequestContext:
    """Test cases for RequestContext."""

    def test_trace_id_unset_by_default(self) -> None:
        """Test no trace ID is set outside a request."""
        assert RequestContext.get_trace_id() is None

    def test_set_and_clear(self) -> None:
        """Test the trace ID can be set and cleared."""
        RequestContext.set_trace_id("a8845f4dc3792a63")
        assert RequestContext.get_trace_id() == "a8845f4dc3792a63"

        RequestContext.clear()
        assert RequestContext.get_trace_id() is None

    async def test_isolated_between_tasks(self) -> None:
        """Test concurrent tasks see their own trace IDs."""

        async def worker(trace_id: str) -> str | None:
            RequestContext.set_trace_id(trace_id)
            await asyncio.sleep(0)
            return RequestContext.get_trace_id()

        results = await asyncio.gather(worker("one"), worker("two"), worker("three"))

        assert results == ["one", "two", "three"]
        assert RequestContext.get_trace_id() is None


@pytest.mark.unit
class TestGenerateTraceId:
    """Test cases for generate_trace_id."""

    def test_format(self) -> None:
        """Test trace IDs are 16 lowercase hex digits."""
        assert re.fullmatch(r"[0-9a-f]{16}", generate_trace_id())

    def test_unique(self) -> None:
        """Test trace IDs do not repeat."""
        assert len({generate_trace_id() for _ in range(100)}) == 100
