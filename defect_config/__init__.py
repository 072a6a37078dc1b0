"""
defect_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Scripts and transports never read YAML files or
    environment variables themselves.  Returns an ``EngineConfig``, the sole
    runtime artifact.

Architecture position:
    Configuration.  This package sits above ``defect_kernel``.  The kernel
    MUST NEVER import from ``defect_config``; ``bridges`` translates the
    config into kernel inputs (DistributionSettings, Clock, engine).

Resolution order (later wins):
    1. ``defaults.yaml`` shipped with this package.
    2. The override file passed as ``config_path``, else the file named by
       the ``DEFECT_KERNEL_CONFIG`` environment variable.
    3. ``DATABASE_URL`` environment variable for ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- override file does not exist.
    - ``ValueError`` -- unknown keys, wrong types, invalid values.

Audit relevance:
    Every successful call emits a ``DEFECT_CONFIG_TRACE`` log entry with
    the checksum of the merged configuration and the files it came from.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from defect_config.loader import load_yaml_file, merge, parse_config
from defect_config.schema import (
    DatabaseConfig,
    DistributionConfig,
    EngineConfig,
    LoggingConfig,
)

_logger = logging.getLogger("defect_kernel.config")

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "DEFECT_KERNEL_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

__all__ = [
    "DatabaseConfig",
    "DistributionConfig",
    "EngineConfig",
    "LoggingConfig",
    "get_active_config",
]


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Non-goals:
        - No caching; callers hold the returned config for the life of the
          process or request.

    Args:
        config_path: Optional YAML override file.  Falls back to
            ``$DEFECT_KERNEL_CONFIG`` when not given.

    Returns:
        Frozen ``EngineConfig``.

    Raises:
        FileNotFoundError: If the override file does not exist.
        ValueError: If the merged configuration is invalid.
    """
    data = load_yaml_file(DEFAULTS_FILE)
    sources = [str(DEFAULTS_FILE)]

    override = config_path or os.environ.get(CONFIG_ENV_VAR)
    if override:
        data = merge(data, load_yaml_file(Path(override)))
        sources.append(str(override))

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        data = merge(data, {"database": {"url": database_url}})
        sources.append(f"${DATABASE_URL_ENV_VAR}")

    config = parse_config(data, sources=tuple(sources))

    _logger.info(
        "DEFECT_CONFIG_TRACE",
        extra={
            "trace_type": "DEFECT_CONFIG_TRACE",
            "checksum": config.checksum,
            "sources": list(config.sources),
            "page_size": config.distribution.page_size,
            "statement_timeout_seconds": config.distribution.statement_timeout_seconds,
            "timezone": config.distribution.timezone,
        },
    )
    return config
