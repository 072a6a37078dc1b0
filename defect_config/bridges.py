"""
Bridges from EngineConfig to kernel inputs.

The kernel MUST NEVER import defect_config.  Scripts call these helpers to
turn a resolved ``EngineConfig`` into the plain objects the kernel accepts.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

from sqlalchemy.engine import Engine

from defect_config.schema import EngineConfig
from defect_kernel.db.engine import init_engine_from_url
from defect_kernel.domain.clock import SystemClock
from defect_kernel.logging_config import configure_logging
from defect_kernel.services.distribution_orchestrator import DistributionSettings


def build_distribution_settings(config: EngineConfig) -> DistributionSettings:
    dist = config.distribution
    return DistributionSettings(
        page_size=dist.page_size,
        statement_timeout_seconds=dist.statement_timeout_seconds,
        defect_no_width=dist.defect_no_width,
    )


def build_clock(config: EngineConfig) -> SystemClock:
    """System clock in the plant time zone."""
    return SystemClock(ZoneInfo(config.distribution.timezone))


def init_engine(config: EngineConfig) -> Engine:
    """Configure logging, then initialize the kernel engine from config."""
    configure_logging(level=config.logging.level.upper())
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
