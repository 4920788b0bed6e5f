"""Configuration management for the sqlite3 pipe driver."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlite_pipe.domain.value_objects.shell_protocol import (
    DEFAULT_SENTINEL_TAG,
    SENTINEL_TAG_PATTERN,
)


class ProcessConfig(BaseModel):
    """Child process configuration."""

    executable: str = Field(default="sqlite3", min_length=1, description="sqlite3 executable")
    database_path: Path | None = Field(
        default=None, description="Database file; None runs an in-memory database"
    )
    extra_args: list[str] = Field(
        default_factory=list, description="Arguments passed before the database path"
    )
    close_grace_seconds: float = Field(
        default=2.0, gt=0, description="Time allowed for a polite exit before kill"
    )
    stream_limit_bytes: int = Field(
        default=16777216, ge=65536, description="Stdout reader buffer limit; longer lines are read in chunks (default 16MB)"
    )
    encoding: str = Field(default="utf-8", description="Encoding of the shell's streams")


class QueueConfig(BaseModel):
    """Request queue configuration."""

    request_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Per-request deadline; None waits forever"
    )
    max_buffer_chars: int = Field(
        default=33554432, ge=1024, description="Cap on buffered output per stream"
    )
    sentinel_tag: str = Field(
        default=DEFAULT_SENTINEL_TAG,
        pattern=SENTINEL_TAG_PATTERN,
        description="Literal selected after every statement to mark end of output",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    logging_enabled: bool = Field(
        default=False, description="Emit driver events through structlog by default"
    )
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="sqlite_pipe", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the sqlite3 pipe driver."""

    model_config = SettingsConfigDict(
        env_prefix="SQLITE_PIPE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    process: ProcessConfig = Field(default_factory=ProcessConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
