"""Core application constants."""

# Size constants
BYTES_PER_MIB = 1024 * 1024
DEFAULT_MAX_REQUEST_LENGTH = 16 * BYTES_PER_MIB

# Security and redaction
REDACTED = "[REDACTED]"

# Trace IDs are 8 random bytes rendered as hex
TRACE_ID_BYTES = 8
