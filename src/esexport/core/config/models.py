"""
Pydantic configuration models for esexport.

These models provide type-safe configuration with validation for:
- Elasticsearch connection settings
- Slicing (partition) settings
- Output, progress and logging settings
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Client Configuration
# =============================================================================


class ClientConfig(BaseModel):
    """Elasticsearch connection settings."""

    host: str = Field(
        default="http://localhost:9200",
        description="Elasticsearch base URL",
    )
    index: str = Field(
        default="",
        description="Index to search (appended to the search URL)",
    )
    doc_type: str = Field(
        default="",
        description="Document type (appended to the search URL)",
    )
    routing: str = Field(
        default="",
        description="Routing passed to the search",
    )
    search_context_ttl: str = Field(
        default="1m",
        description="Scroll context TTL used to search and scroll",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds",
    )

    @field_validator("host")
    @classmethod
    def host_is_absolute_url(cls, v: str) -> str:
        """Ensure the host is an absolute http(s) URL."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"host must be an absolute http(s) URL, got {v!r}")
        return v


# =============================================================================
# Partition Configuration
# =============================================================================


class PartitionConfig(BaseModel):
    """How the query is split into slices."""

    count: int = Field(
        default=1,
        ge=0,
        description="Number of slices (0 or 1 exports without slicing)",
    )
    field: str | None = Field(
        default=None,
        description="Field used to slice the query (backend default if unset)",
    )
    query: dict[str, Any] = Field(
        default_factory=dict,
        description="Search body sent for every slice",
    )

    @property
    def sliced(self) -> bool:
        return self.count > 1


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def level_is_known(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# Export Configuration
# =============================================================================


class ExportConfig(BaseModel):
    """Root export configuration.

    Loaded from a YAML file and overridden by command-line flags.
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    partition: PartitionConfig = Field(default_factory=PartitionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    output: Path | None = Field(
        default=None,
        description="JSON-lines output file (hits are only counted if unset)",
    )
    progress_interval: float = Field(
        default=0.5,
        gt=0.0,
        description="Seconds between progress updates",
    )
    trace: bool = Field(
        default=False,
        description="Log queries, slice totals and timings",
    )
