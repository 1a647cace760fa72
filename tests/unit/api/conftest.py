"""Fixtures for API layer tests.

Requests are real Starlette requests built from an ASGI scope, with a
scripted ``receive`` so that tests control exactly how the body arrives.
Responses are run against a ``SendRecorder`` to see what reaches the wire.
"""

from typing import Any

import pytest
from starlette.requests import Request
from starlette.types import Receive

from tests.unit.api.asgi_helpers import (
    RequestFactory,
    SendRecorder,
    build_scope,
    scripted_receive,
)


@pytest.fixture
def make_request() -> RequestFactory:
    """Provide a factory for Starlette requests.

    Returns:
        RequestFactory: Call with ``body=``, ``receive=`` and any
            ``build_scope`` keyword.
    """

    def factory(
        body: bytes | None = None,
        receive: Receive | None = None,
        **scope_kwargs: Any,
    ) -> Request:
        if receive is None:
            receive = scripted_receive([body or b""])
        return Request(build_scope(**scope_kwargs), receive)

    return factory


@pytest.fixture
def send_recorder() -> SendRecorder:
    """Provide an ASGI send callable that records messages."""
    return SendRecorder()
