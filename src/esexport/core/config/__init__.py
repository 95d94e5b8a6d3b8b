"""Configuration loading and validation."""

from .models import (
    ClientConfig,
    ExportConfig,
    LoggingConfig,
    PartitionConfig,
)
from .loader import ConfigError, load_export_config, parse_query, trace_from_env

__all__ = [
    # Config models
    "ExportConfig",
    "ClientConfig",
    "PartitionConfig",
    "LoggingConfig",
    # Loaders
    "ConfigError",
    "load_export_config",
    "parse_query",
    "trace_from_env",
]
