"""Request and response payload buffering.

A ``PayloadBuffer`` holds one HTTP body in flight together with its content
type and content encoding. Request bodies are read with a hard size limit and
optionally decompressed before being decoded; response bodies are encoded as
JSON and gzipped when the client accepts it and it actually saves bytes.

Although HTTP does not define ``Content-Encoding`` for requests, clients may
send gzip or deflate bodies. This is handy for large JSON PUT/POST requests.
"""

import gzip
import re
import zlib
from typing import Any

import orjson
from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from httpapi.api.constants import (
    CE_DEFLATE,
    CE_GZIP,
    CE_IDENTITY,
    COMPRESSION_OVERHEAD,
    DEFAULT_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    MIN_COMPRESSIBLE_LENGTH,
)
from httpapi.core.config import get_settings
from httpapi.core.exceptions import (
    BadRequestError,
    CompressionError,
    DecompressionError,
    EncodingError,
    PayloadTooLargeError,
    PayloadWriteError,
    SerializationError,
    UnsupportedEncodingError,
)

type RawHeaders = list[tuple[bytes, bytes]]

_CONTENT_LENGTH_PATTERN = re.compile(r"[+-]?[0-9]+")


def max_request_length() -> int:
    """Return the process-wide maximum request body size in bytes."""
    return get_settings().payload_config.max_request_length


def _parse_content_length(value: str) -> int | None:
    if not _CONTENT_LENGTH_PATTERN.fullmatch(value):
        return None
    length = int(value)
    return length if length >= 0 else None


async def _read_body(request: Request, limit: int, failure_message: str) -> bytes:
    """Read at most ``limit`` bytes from the request body stream."""
    body = bytearray()
    if limit <= 0:
        return b""
    try:
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) >= limit:
                break
    except (ClientDisconnect, OSError) as exc:
        raise BadRequestError(failure_message, cause=exc) from exc
    return bytes(body[:limit])


def _inflate(content: bytes, wbits: int, limit: int, *, multi_member: bool) -> bytes:
    inflated = b""
    remaining = content
    try:
        while True:
            decompressor = zlib.decompressobj(wbits)
            inflated += decompressor.decompress(remaining, max(limit - len(inflated), 1))
            if decompressor.unconsumed_tail:
                raise DecompressionError(
                    "decompressed payload too large", context={"max_length": limit}
                )
            inflated += decompressor.flush()
            if not decompressor.eof:
                raise DecompressionError("truncated compressed content")
            if len(inflated) >= limit:
                raise DecompressionError(
                    "decompressed payload too large", context={"max_length": limit}
                )
            # A gzip stream may hold several members, each starting anew
            remaining = decompressor.unused_data
            if not (multi_member and remaining):
                return inflated
    except zlib.error as exc:
        raise DecompressionError("corrupt compressed content", cause=exc) from exc


def _json_default(value: Any) -> Any:  # noqa: ANN401 - orjson default hook
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    msg = f"Type is not JSON serializable: {type(value).__name__}"
    raise TypeError(msg)


class PayloadBuffer:
    """The content of one request or response body.

    Attributes:
        content: The raw body bytes, possibly compressed.
        content_type: MIME type of the content.
        content_encoding: ``identity``, ``deflate``, ``gzip`` or any other
            value a client declared. Empty values are stored as ``identity``.
        uncompressed_length: Length of the content once decompressed, or 0
            if not known.
    """

    def __init__(
        self,
        content: bytes = b"",
        content_type: str = DEFAULT_CONTENT_TYPE,
        content_encoding: str = CE_IDENTITY,
        uncompressed_length: int = 0,
    ) -> None:
        self.content = content
        self.content_type = content_type
        self.content_encoding = content_encoding
        self.uncompressed_length = uncompressed_length

    @property
    def content_encoding(self) -> str:
        """The content encoding, never empty."""
        return self._content_encoding

    @content_encoding.setter
    def content_encoding(self, value: str) -> None:
        self._content_encoding = value or CE_IDENTITY

    @property
    def is_compressed(self) -> bool:
        """Whether the content is encoded with anything other than identity."""
        return self.content_encoding != CE_IDENTITY

    async def read_request(
        self, request: Request, *, max_length: int | None = None
    ) -> None:
        """Read the request body into the buffer.

        A declared ``Content-Length`` is checked against the limit before any
        of the body is read. Without one, the stream is read until it ends or
        the limit is reached, so that chunked bodies are capped as well.

        Args:
            request: The incoming request.
            max_length: Size limit in bytes; bodies of this size or larger are
                rejected. Defaults to ``payload_config.max_request_length``.

        Raises:
            BadRequestError: If the declared length is invalid or the body
                cannot be read in full.
            PayloadTooLargeError: If the body meets or exceeds the limit.
        """
        limit = max_length if max_length is not None else max_request_length()

        if declared := request.headers.get("content-length"):
            length = _parse_content_length(declared)
            if length is None:
                raise BadRequestError("invalid content-length")
            if length >= limit:
                raise PayloadTooLargeError(
                    context={"content_length": length, "max_length": limit}
                )
            content = await _read_body(request, length, "cannot read full content")
            if len(content) < length:
                raise BadRequestError(
                    "cannot read full content",
                    context={"content_length": length, "received": len(content)},
                )
        else:
            content = await _read_body(request, limit, "cannot read all content")
            if len(content) >= limit:
                raise PayloadTooLargeError(context={"max_length": limit})

        self.content = content

        # The real size is unknown until a declared encoding is undone
        if encoding := request.headers.get("content-encoding"):
            self.content_encoding = encoding
            self.uncompressed_length = 0
        else:
            self.content_encoding = CE_IDENTITY
            self.uncompressed_length = len(content)

        self.content_type = request.headers.get("content-type") or DEFAULT_CONTENT_TYPE

    @property
    def status_code(self) -> int:
        """Status to respond with: 204 for an empty body, otherwise 200."""
        return 200 if self.content else 204

    def raw_headers(self) -> RawHeaders:
        """Build the ASGI response headers that describe the content."""
        if not self.content:
            return [(b"content-length", b"0")]

        headers: RawHeaders = []
        if self.is_compressed:
            headers.append((b"content-encoding", self.content_encoding.encode("latin-1")))
        headers.append((b"content-type", self.content_type.encode("latin-1")))
        headers.append((b"content-length", str(len(self.content)).encode("latin-1")))
        return headers

    async def write_response(
        self,
        send: Send,
        headers: RawHeaders | None = None,
        status_code: int | None = None,
    ) -> None:
        """Send the content to the client.

        Args:
            send: The ASGI send callable.
            headers: Headers to send, defaults to ``raw_headers()``.
            status_code: Status to send, defaults to ``self.status_code``.

        Raises:
            PayloadWriteError: If the client cannot be written to.
        """
        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": self.status_code if status_code is None else status_code,
                    "headers": self.raw_headers() if headers is None else headers,
                }
            )
            await send({"type": "http.response.body", "body": self.content})
        except (ClientDisconnect, OSError) as exc:
            raise PayloadWriteError("cannot write response", cause=exc) from exc

    def decompress(self, *, max_length: int | None = None) -> None:
        """Undo the content encoding, if any.

        Args:
            max_length: Largest acceptable decompressed size, defaults to
                ``payload_config.max_request_length``.

        Raises:
            UnsupportedEncodingError: If the encoding is not gzip or deflate.
            DecompressionError: If the content is corrupt, truncated or
                inflates beyond the limit.
        """
        if not self.is_compressed:
            return

        if self.content_encoding == CE_DEFLATE:
            wbits = -zlib.MAX_WBITS
        elif self.content_encoding == CE_GZIP:
            wbits = zlib.MAX_WBITS | 16
        else:
            raise UnsupportedEncodingError(
                "unknown content-encoding",
                context={"content_encoding": self.content_encoding},
            )

        limit = max_length if max_length is not None else max_request_length()
        self.content = _inflate(
            self.content, wbits, limit, multi_member=self.content_encoding == CE_GZIP
        )
        self.content_encoding = CE_IDENTITY
        self.uncompressed_length = len(self.content)

    def compress_response(self, request: Request) -> None:
        """Gzip the content if the client accepts it and it saves bytes.

        Raises:
            CompressionError: If the compressor fails.
        """
        if self.is_compressed or len(self.content) < MIN_COMPRESSIBLE_LENGTH:
            return

        # TODO: parse q-values so that "gzip;q=0" turns compression off.
        if CE_GZIP not in request.headers.get("accept-encoding", ""):
            return

        try:
            compressed = gzip.compress(self.content, mtime=0)
        except (OSError, zlib.error) as exc:
            raise CompressionError("cannot compress", cause=exc) from exc

        if len(compressed) + COMPRESSION_OVERHEAD < len(self.content):
            self.uncompressed_length = len(self.content)
            self.content = compressed
            self.content_encoding = CE_GZIP

    def unmarshal_to[T](self, target: type[T], *, max_length: int | None = None) -> T:
        """Decode the JSON content as an instance of ``target``.

        Args:
            target: Any type pydantic can validate: a model, a dataclass,
                ``dict``, ``list[int]`` and so on.
            max_length: Largest acceptable decompressed size, see
                ``decompress``.

        Returns:
            T: The decoded value.

        Raises:
            BadRequestError: If the content cannot be decompressed or is not
                valid JSON for ``target``.
        """
        try:
            self.decompress(max_length=max_length)
        except EncodingError as exc:
            raise BadRequestError("cannot decompress payload", cause=exc) from exc

        try:
            return TypeAdapter(target).validate_json(self.content)
        except ValidationError as exc:
            raise BadRequestError("invalid JSON payload", cause=exc) from exc

    def marshal_from(self, value: object) -> None:
        """Replace the content with the JSON encoding of ``value``.

        Raises:
            SerializationError: If ``value`` cannot be encoded.
        """
        try:
            content = orjson.dumps(value, default=_json_default)
        except orjson.JSONEncodeError as exc:
            raise SerializationError(
                "cannot encode value as JSON",
                context={"value_type": type(value).__name__},
                cause=exc,
            ) from exc

        self.content = content
        self.content_type = JSON_CONTENT_TYPE
        self.content_encoding = CE_IDENTITY
        self.uncompressed_length = len(content)


class PayloadResponse(Response):
    """A Starlette response that sends a ``PayloadBuffer`` as is.

    Write failures are logged and swallowed: by then the status line may
    already be on the wire, so there is no better response to give. The
    background task runs whether or not the write succeeded.

    Args:
        payload: The buffer to send.
        status_code: Status to send, defaults to the payload's own.
        headers: Extra headers to send with the payload headers.
        background: Task to run once the response has been sent.
    """

    def __init__(
        self,
        payload: PayloadBuffer,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        self.payload = payload
        self.status_code = payload.status_code if status_code is None else status_code
        self.media_type = payload.content_type if payload.content else None
        self.body = payload.content
        self.background = background
        self.raw_headers = payload.raw_headers()
        for key, value in (headers or {}).items():
            self.raw_headers.append(
                (key.lower().encode("latin-1"), value.encode("latin-1"))
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Send the payload, then run the background task."""
        try:
            await self.payload.write_response(send, self.raw_headers, self.status_code)
        except PayloadWriteError as exc:
            logger.warning(
                "Cannot write response: {}",
                exc,
                status_code=self.status_code,
                content_length=len(self.payload.content),
            )
        finally:
            if self.background is not None:
                await self.background()
