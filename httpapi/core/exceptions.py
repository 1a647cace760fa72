"""Exception hierarchy used by the payload pipeline and by request handlers.

Every error raised by httpapi derives from ``ApiError``. An error may carry
public classification fields that are considered safe to show to any client:

- **public_status**: HTTP status code to respond with
- **public_message**: Message text to respond with
- **public_code**: Optional machine-readable code

Errors without public fields are presented to clients as a generic 500
response. The full error text (``str(error)``) is only ever shown to trusted
clients, in the optional ``detail`` field of the error envelope.

Key components:
- **ErrorCode enum**: Internal error identifiers used for logging
- **Severity enum**: Error classification for monitoring and alerting
- **PublicError** and subclasses: Input errors with a client-safe status
- **EncodingError** and friends: Internal payload processing failures
"""

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Internal error codes, recorded in logs but never sent to clients."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""

    PUBLIC_ERROR = "PUBLIC_ERROR"
    """An error whose message and status may be returned to any client."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input was malformed, unreadable or could not be decoded."""

    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""

    UNAUTHORIZED = "UNAUTHORIZED"
    """Authentication failed or the caller is not authorized."""

    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    """The request body met or exceeded the configured maximum size."""

    ENCODING_ERROR = "ENCODING_ERROR"
    """A payload could not be compressed or decompressed."""

    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    """A value could not be encoded as JSON."""

    WRITE_ERROR = "WRITE_ERROR"
    """A response could not be written to the client."""


class Severity(Enum):
    """Severity levels used to pick log levels and alerting."""

    LOW = "LOW"
    """Expected errors caused by client input."""

    MEDIUM = "MEDIUM"
    """Errors that affect a single request but are not alarming."""

    HIGH = "HIGH"
    """Errors that point at a defect or a misbehaving peer."""

    CRITICAL = "CRITICAL"
    """Errors requiring immediate attention."""


class ApiError(Exception):
    """Base exception class for all httpapi exceptions.

    Args:
        error_code: Internal identifier for the error type
        message: Human-readable error message (not shown to untrusted clients)
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
        public_status: HTTP status that may be shown to any client
        public_message: Message that may be shown to any client
        public_code: Error code that may be shown to any client
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        *,
        public_status: int | None = None,
        public_message: str | None = None,
        public_code: str | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause
        self.public_status = public_status
        self.public_message = public_message
        self.public_code = public_code

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    @property
    def is_public(self) -> bool:
        """Whether any part of this error is safe to show to clients."""
        return (
            self.public_status is not None
            or self.public_message is not None
            or self.public_code is not None
        )

    @property
    def is_expected(self) -> bool:
        """Expected errors (LOW or MEDIUM) are logged quietly and never alert."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """HIGH and CRITICAL errors should trigger alerts."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def __str__(self) -> str:
        """Return the error code and message."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return a detailed representation of the exception."""
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class PublicError(ApiError):
    """An error whose message, status and optional code are client-safe.

    Args:
        message: Message returned to the client
        status_code: HTTP status returned to the client
        code: Optional error code returned to the client
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    default_error_code: ErrorCode = ErrorCode.PUBLIC_ERROR
    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            self.default_error_code,
            message,
            self.default_severity,
            context,
            cause,
            public_status=status_code,
            public_message=message,
            public_code=code,
        )


class BadRequestError(PublicError):
    """Raised when a request is malformed, unreadable or undecodable (400)."""

    default_error_code = ErrorCode.VALIDATION_ERROR
    default_severity = Severity.LOW

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, 400, code, context, cause)


class UnauthorizedError(PublicError):
    """Raised when authentication or authorization fails (401)."""

    default_error_code = ErrorCode.UNAUTHORIZED
    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, 401, code, context, cause)


class NotFoundError(PublicError):
    """Raised when a requested resource does not exist (404)."""

    default_error_code = ErrorCode.NOT_FOUND
    default_severity = Severity.LOW

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, 404, code, context, cause)


class PayloadTooLargeError(PublicError):
    """Raised when a request body meets or exceeds the size limit (413)."""

    default_error_code = ErrorCode.PAYLOAD_TOO_LARGE
    default_severity = Severity.LOW

    def __init__(
        self,
        message: str = "payload too large",
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, 413, code, context, cause)


class EncodingError(ApiError):
    """Base class for compression and decompression failures.

    These are internal errors: clients see a generic 500 unless the error is
    wrapped in a ``PublicError``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(ErrorCode.ENCODING_ERROR, message, Severity.HIGH, context, cause)


class UnsupportedEncodingError(EncodingError):
    """Raised when a payload declares a content encoding that is not supported."""


class DecompressionError(EncodingError):
    """Raised when compressed content is corrupt, truncated or too large."""


class CompressionError(EncodingError):
    """Raised when content cannot be compressed."""


class SerializationError(ApiError):
    """Raised when a value cannot be encoded as JSON."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.SERIALIZATION_ERROR, message, Severity.HIGH, context, cause
        )


class PayloadWriteError(ApiError):
    """Raised when response bytes cannot be written to the client.

    The status line may already have been sent when this happens, so it is
    never turned into an error response.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(ErrorCode.WRITE_ERROR, message, Severity.MEDIUM, context, cause)
