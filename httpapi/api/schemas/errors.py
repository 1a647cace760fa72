"""Error envelope schema for JSON error responses.

Every error response written with the default marshaller has this shape::

    {
      "error": {
        "message": "not found",
        "status": 404,
        "code": "XXX999",
        "trace": "a8845f4dc3792a63",
        "detail": "detailed information for trusted clients"
      }
    }

``code``, ``trace`` and ``detail`` are omitted when empty, and ``detail`` is
only ever filled in for trusted clients.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """The body of the ``error`` key."""

    message: str = Field(
        ...,
        description="Client-safe error message",
        examples=["not found", "invalid JSON payload", "Internal Server Error"],
    )

    status: int = Field(
        ...,
        description="HTTP status code, repeated for clients that lose it",
        examples=[400, 404, 500],
    )

    code: str | None = Field(
        default=None,
        description="Optional machine-readable error code",
        examples=["XXX999"],
    )

    trace: str | None = Field(
        default=None,
        description="Identifier for cross reference with server logs",
        examples=["a8845f4dc3792a63"],
    )

    detail: str | None = Field(
        default=None,
        description="Full error text, only present for trusted clients",
        examples=["[ENCODING_ERROR] truncated compressed content"],
    )


class ErrorEnvelope(BaseModel):
    """Top level JSON object of an error response."""

    error: ErrorDetail
