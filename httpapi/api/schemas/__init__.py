"""Pydantic schema models for API responses.

This package contains the models that define what clients receive:
- **errors**: The JSON error envelope written by ``write_error``
"""
