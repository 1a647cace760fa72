"""httpapi - conventions for JSON-speaking HTTP endpoints.

httpapi is not a framework. It sits on top of Starlette/FastAPI requests and
provides a handful of primitives for reading input from HTTP requests and
writing output to HTTP clients.

Architecture Overview:
- **Core Layer**: Configuration, logging, request context and the error taxonomy
- **API Layer**: Payload buffering, query string parsing, error presentation
  and the read/write façade used by request handlers

Key Features:
- **Bounded reads**: Request bodies are capped before they are decoded
- **Compression**: Gzip responses for clients that accept them, and optional
  gzip/deflate request bodies
- **Deferred validation**: Query parameters are parsed field by field and
  reported as a single error
- **Safe errors**: A consistent JSON error envelope that only shows internal
  details to trusted clients
"""

from httpapi.api.query import QueryValues, query
from httpapi.api.readwrite import handler, read_request, write_error, write_response

__all__ = [
    "QueryValues",
    "handler",
    "query",
    "read_request",
    "write_error",
    "write_response",
]
