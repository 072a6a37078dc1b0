"""
Configuration schema (``defect_config.schema``).

Frozen dataclasses describing one resolved engine configuration.  Parsing
and validation live in ``loader``; these classes hold data only.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class DistributionConfig:
    """Tunables of the distribution engine."""

    page_size: int = 200
    statement_timeout_seconds: int = 30
    defect_no_width: int = 4
    # IANA zone of the plant; defect numbers use the plant calendar day
    timezone: str = "UTC"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class EngineConfig:
    """The sole runtime configuration artifact."""

    database: DatabaseConfig
    distribution: DistributionConfig
    logging: LoggingConfig
    checksum: str
    sources: tuple[str, ...] = ()
