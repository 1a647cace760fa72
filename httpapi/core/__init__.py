"""Core package for functionality shared by the HTTP layer.

This package provides the foundational components used by the API layer:

- **config**: Centralized configuration management with environment support
- **context**: Request context and trace ID management
- **exceptions**: Error taxonomy with public status, message and code
- **error_context**: Sensitive data sanitization for safe error logging
- **logging**: Structured logging with Loguru
- **constants**: Shared constants
"""
