"""HTTP layer of httpapi, built on Starlette and FastAPI.

Key components:
- **payload**: Bounded reading, decompression, JSON encoding and gzip
  compression of request and response bodies
- **query**: Typed query string access with deferred validation
- **presentation**: The policy that decides what an error response shows
- **readwrite**: The functions request handlers call to read and write JSON
- **middleware**: Error presentation config, trace IDs and exception handlers
- **schemas**: The JSON error envelope
- **main**: A small demo application showing the intended usage
"""
