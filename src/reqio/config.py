"""Configuration resolution with a fixed precedence chain.

A :class:`~reqio.models.ClientConfig` can be built from four layers,
highest precedence first:

1. Explicit overrides (keyword arguments, CLI flags).
2. Environment variables (``REQIO_BASE_URL``, ``REQIO_TIMEOUT``,
   ``REQIO_CACHE_TTL``, ``REQIO_RETRY_ATTEMPTS``, ``REQIO_RETRY_DELAY``,
   ``REQIO_RETRY_BACKOFF``).
3. A JSON config file: an explicit path, or ``./reqio.json`` when present.
4. Model defaults.

Every failure (unreadable file, invalid JSON, a value that fails
validation) is reported as :class:`~reqio.exceptions.ConfigError`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from reqio.exceptions import ConfigError
from reqio.models import ClientConfig

_PROJECT_CONFIG_FILENAME = "reqio.json"

ENV_VARS: dict[str, str] = {
    "REQIO_BASE_URL": "base_url",
    "REQIO_TIMEOUT": "timeout",
    "REQIO_CACHE_TTL": "cache_ttl",
    "REQIO_RETRY_ATTEMPTS": "retry_attempts",
    "REQIO_RETRY_DELAY": "retry_delay",
    "REQIO_RETRY_BACKOFF": "retry_backoff",
}
"""Environment variable name -> :class:`ClientConfig` field."""


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file and return its top-level object.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or does
            not contain a JSON object.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}: expected a JSON object")
    return data


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./reqio.json`` if it exists, else return ``None``."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return load_config_file(path)


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect config values from ``REQIO_*`` environment variables.

    Empty variables are ignored.  Values are passed to Pydantic as strings,
    which coerces them to the field types.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for var, field_name in ENV_VARS.items():
        raw = env.get(var, "")
        if raw:
            values[field_name] = raw
    return values


def resolve_config(
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Merge every configuration layer into a validated :class:`ClientConfig`.

    Args:
        overrides: Highest-precedence values.  ``None`` values are skipped so
            unset CLI options do not mask lower layers.
        config_file: Explicit JSON config path.  When omitted,
            ``./reqio.json`` is used if present.
        environ: Environment mapping; defaults to :data:`os.environ`.

    Raises:
        ConfigError: If any layer is unreadable or the result fails validation.
    """
    # 4 + 3. Defaults, then file
    if config_file is not None:
        merged: dict[str, Any] = load_config_file(config_file)
    else:
        merged = load_project_config() or {}

    # 2. Environment
    merged.update(load_env_config(environ))

    # 1. Explicit overrides
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    try:
        return ClientConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
