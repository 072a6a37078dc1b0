"""
Module: defect_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but never
      call session.add(), session.delete(), session.flush() or commit().
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances, so callers never hold identity-map state that could go
      stale between reads.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Selectors accept a Session, run read-only queries, return DTOs."""

    def __init__(self, session: Session):
        self.session = session
