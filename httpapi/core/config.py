"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support.

Features:
- **Type safety**: All configuration values are validated and typed
- **Environment variables**: Supports .env files and environment overrides
- **Nested configuration**: Uses __ delimiter for nested config structures
- **Caching**: Configuration is cached, and treated as read-only once loaded

Configuration sources (in order of precedence):
1. Environment variables
2. .env file in project root
3. Default values in model definitions
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from httpapi.core.constants import DEFAULT_MAX_REQUEST_LENGTH


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class PayloadConfig(BaseModel):
    """Limits applied to request and response payloads."""

    max_request_length: int = Field(
        default=DEFAULT_MAX_REQUEST_LENGTH,
        gt=0,
        description=(
            "Maximum request body size in bytes. Bodies of this size or "
            "larger are rejected with 413."
        ),
    )


class ErrorConfig(BaseModel):
    """Defaults for the error presentation policy."""

    trusted_hosts: list[str] = Field(
        default_factory=list,
        description=(
            "Client hosts that may see internal error details. Requests "
            "arriving through a proxy are never trusted."
        ),
    )

    @field_validator("trusted_hosts", mode="after")
    @classmethod
    def strip_hosts(cls, v: list[str]) -> list[str]:
        """Drop blank entries and surrounding whitespace."""
        return [host.strip() for host in v if host.strip()]


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="httpapi", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # Demo server settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    payload_config: PayloadConfig = Field(
        default_factory=PayloadConfig, description="Payload limits"
    )
    error_config: ErrorConfig = Field(
        default_factory=ErrorConfig, description="Error presentation defaults"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Auto-detect log formatter based on environment."""
        # Containers on Cloud Run and AWS expect one JSON object per line
        if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
            return "json"
        if self.environment == "development":
            return "console"
        return "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
