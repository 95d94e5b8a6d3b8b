"""
Configuration loader for YAML files.

Loads and validates export configuration from YAML files into Pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import orjson
import yaml
from pydantic import ValidationError

from esexport.core.cursor.sliced import MalformedQuery

from .models import ExportConfig


DEFAULT_CONFIG_PATH = Path("esexport.yaml")
TRACE_ENV_VAR = "ESEXPORTDEBUG"

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}", path=path)
    return data


def _expand_env_vars(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand environment variables in string values.

    Supports ${VAR} and ${VAR:-default} syntax.
    """
    def replacer(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), match.group(2) or "")

    def expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_PATTERN.sub(replacer, value)
        elif isinstance(value, dict):
            return {k: expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [expand_value(item) for item in value]
        return value

    return expand_value(data)


def trace_from_env(env_var: str = TRACE_ENV_VAR) -> bool:
    """Tracing is on when the environment variable is set to anything non-empty."""
    return bool(os.environ.get(env_var))


def load_export_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> ExportConfig:
    """Load export configuration from a YAML file.

    Args:
        path: Path to the config file (default: ./esexport.yaml, optional)
        expand_env: Whether to expand environment variables

    Returns:
        Validated ExportConfig instance

    Raises:
        ConfigError: If an explicit file is missing or configuration is invalid
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            return ExportConfig()
    else:
        path = Path(path)

    data = _load_yaml_file(path)

    if expand_env:
        data = _expand_env_vars(data)

    try:
        return ExportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid export configuration in {path}",
            path=path,
            details=str(e),
        ) from e


def parse_query(text: str) -> dict[str, Any]:
    """Parse a JSON search body.

    Raises:
        MalformedQuery: If the text is not a JSON object
    """
    try:
        query = orjson.loads(text)
    except orjson.JSONDecodeError as e:
        raise MalformedQuery(f"Error parsing query: {e}") from e

    if not isinstance(query, dict):
        raise MalformedQuery(f"Query must be a JSON object, got {type(query).__name__}")

    return query
