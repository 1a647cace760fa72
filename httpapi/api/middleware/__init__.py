"""Middleware and exception handlers that wire httpapi into an application.

- **RequestContextMiddleware**: Takes or generates the trace ID of a request
- **ErrorConfigMiddleware**: Attaches an error presentation config to requests
- **register_exception_handlers**: Sends uncaught exceptions through
  ``write_error`` so that every error has the same JSON envelope

Middleware run in reverse order of registration. Register the request context
last so that the trace ID is set before anything else runs.
"""
