"""
BaseService -- abstract base for kernel write-side services.

Services receive a SQLAlchemy ``Session`` from their caller and persist
changes with ``session.flush()``; they never call ``commit()`` or
``rollback()``.  The DistributionOrchestrator (or the caller, with
auto_commit off) owns the transaction boundary, which is what makes a
distribution all-or-nothing.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session; flush-only, never commits."""

    def __init__(self, session: Session):
        self.session = session
