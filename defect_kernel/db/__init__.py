"""Database layer - engine, base classes and sessions."""

from defect_kernel.db.base import UUID, Base, ProvenanceBase, UUIDString
from defect_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "create_tables",
    "Base",
    "ProvenanceBase",
    "UUIDString",
    "UUID",
]
