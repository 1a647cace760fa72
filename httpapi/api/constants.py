"""API-related constants."""

# HTTP Headers
TRACE_ID_HEADER = "X-Correlation-ID"
FORWARDED_HEADERS = ("forwarded", "x-forwarded-for")

# Content types
JSON_CONTENT_TYPE = "application/json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Content encodings
CE_IDENTITY = "identity"
CE_DEFLATE = "deflate"
CE_GZIP = "gzip"

# Extra bytes a compressed response costs: len("Content-Encoding: gzip\r\n")
COMPRESSION_OVERHEAD = 24

# Bodies shorter than this are never worth compressing
MIN_COMPRESSIBLE_LENGTH = 4 * COMPRESSION_OVERHEAD

# Query string values that mean "not supplied" for time and date parameters
BLANK_QUERY_VALUES = frozenset({"", "undefined", "null"})

# Integer query parameters must fit in a signed 64-bit integer
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
