"""
Configuration Loader (``defect_config.loader``).

Responsibility
--------------
Loads YAML configuration files, deep-merges overrides onto the packaged
defaults, and parses the result into the frozen dataclasses of
``defect_config.schema``.  Runtime callers go through
``defect_config.get_active_config()``, not through this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key, wrong type, out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from defect_config.schema import (
    DatabaseConfig,
    DistributionConfig,
    EngineConfig,
    LoggingConfig,
)

_SECTIONS = {
    "database": DatabaseConfig,
    "distribution": DistributionConfig,
    "logging": LoggingConfig,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge; mappings merge key by key, everything else replaces."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the merged configuration."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_section(name: str, cls: type, data: Any) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(
            f"Unknown key(s) in config section '{name}': {', '.join(sorted(unknown))}"
        )

    values: dict[str, Any] = {}
    for key, value in data.items():
        expected = known[key].type
        if expected == "bool" and not isinstance(value, bool):
            raise ValueError(f"{name}.{key} must be true or false")
        if expected == "int" and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError(f"{name}.{key} must be an integer")
        if expected == "str" and not isinstance(value, str):
            raise ValueError(f"{name}.{key} must be a string")
        values[key] = value
    return cls(**values)


def _validate(config: EngineConfig) -> None:
    dist = config.distribution
    if dist.page_size <= 0:
        raise ValueError("distribution.page_size must be positive")
    if dist.statement_timeout_seconds < 0:
        raise ValueError("distribution.statement_timeout_seconds must not be negative")
    if not 1 <= dist.defect_no_width <= 12:
        raise ValueError("distribution.defect_no_width must be between 1 and 12")
    try:
        ZoneInfo(dist.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"distribution.timezone is not a known zone: {dist.timezone}") from None

    if config.logging.level.upper() not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
    if not config.database.url:
        raise ValueError("database.url is required")


def parse_config(data: dict[str, Any], sources: tuple[str, ...] = ()) -> EngineConfig:
    """
    Parse a merged configuration dict into an ``EngineConfig``.

    Raises:
        ValueError: unknown sections/keys, wrong types, invalid values.
    """
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

    if "url" not in (data.get("database") or {}):
        raise ValueError("database.url is required")

    config = EngineConfig(
        database=_parse_section("database", DatabaseConfig, data.get("database")),
        distribution=_parse_section(
            "distribution", DistributionConfig, data.get("distribution")
        ),
        logging=_parse_section("logging", LoggingConfig, data.get("logging")),
        checksum=compute_checksum(data),
        sources=sources,
    )
    _validate(config)
    return config
