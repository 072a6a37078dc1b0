"""
DefectNumberService -- daily sequential defect numbers.

Responsibility:
    Produces the ``defect_no`` of each DefectResult row:
    ``YYYYMMDD`` (plant day from the injected clock) followed by the day's
    sequence, zero padded to ``width`` digits (4 by default).

Architecture position:
    Kernel > Services.  Called by CommitExecutor once per applied allocation.

Uniqueness:
    The next sequence is one past the highest already stored for the day.
    Rows flushed earlier in the same transaction are visible, so one
    distribution never repeats a number.  Two concurrent transactions can
    compute the same number; the loser's INSERT hits
    ``uq_defect_results_defect_no`` and CommitExecutor turns that into
    DefectNoConflictError.  Generation takes no lock so that a distribution
    never serializes behind another one's open transaction.

    Numbers past the pad width grow one digit longer; the lookup orders by
    length first so "2024010110000" still sorts after "202401019999".
"""

from dataclasses import dataclass

from sqlalchemy import func, select

from defect_kernel.domain.clock import Clock
from defect_kernel.logging_config import get_logger
from defect_kernel.models.defect_result import DefectResult
from defect_kernel.services.base import BaseService

logger = get_logger("services.defect_number")

DAY_PREFIX_LEN = 8


@dataclass(frozen=True)
class DefectNumber:
    """(day, sequence) pair and its printable form."""

    day: str
    sequence: int
    width: int = 4

    @property
    def defect_no(self) -> str:
        return f"{self.day}{self.sequence:0{self.width}d}"

    def __str__(self) -> str:
        return self.defect_no


def parse_defect_no(defect_no: str, width: int = 4) -> DefectNumber:
    """Split a stored defect_no back into its parts."""
    day, seq = defect_no[:DAY_PREFIX_LEN], defect_no[DAY_PREFIX_LEN:]
    if len(day) != DAY_PREFIX_LEN or not day.isdigit() or not seq.isdigit():
        raise ValueError(f"Malformed defect_no: {defect_no!r}")
    return DefectNumber(day=day, sequence=int(seq), width=width)


class DefectNumberService(BaseService):
    """Allocates the next defect number for the plant day."""

    def __init__(self, session, clock: Clock, width: int = 4):
        super().__init__(session)
        self._clock = clock
        self._width = width

    def next_number(self) -> DefectNumber:
        day = self._clock.today_yyyymmdd()
        last = self.session.execute(
            select(DefectResult.defect_no)
            .where(DefectResult.defect_no.startswith(day, autoescape=True))
            .order_by(
                func.length(DefectResult.defect_no).desc(),
                DefectResult.defect_no.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()

        sequence = 1
        if last is not None:
            sequence = parse_defect_no(last, self._width).sequence + 1

        number = DefectNumber(day=day, sequence=sequence, width=self._width)
        logger.debug(
            "defect_no_allocated",
            extra={"day": day, "sequence": sequence, "defect_no": number.defect_no},
        )
        return number
