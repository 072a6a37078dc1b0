"""
Distribution Orchestrator - owns the transaction of one distribution.

The Orchestrator ties together:
- CandidateSelector: stable candidate pages
- SimulationPlanner: dry-run capacity verdict
- CommitExecutor: conditional updates and defect result rows
- DefectNumberService: daily defect numbers

State machine:

    STARTED -> SIMULATING -> EXCEEDED                    (rollback, nothing written)
                          -> COMMITTING -> OK            (commit)
                                        -> CHANGED       (rollback everything)
                                        -> DEFECT_NO_CONFLICT (rollback everything)

Manages its own transaction boundary when ``auto_commit`` is on (default):
commit only when every requested unit was applied, roll back on every
other exit including unexpected errors.  With ``auto_commit=False`` the
caller commits or rolls back; after a non-OK result it must roll back.
"""

import time
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from defect_kernel.domain.allocation import DEFAULT_PAGE_SIZE
from defect_kernel.domain.clock import Clock, SystemClock
from defect_kernel.domain.dtos import (
    DistributionRequest,
    DistributionResult,
    SimulationPlan,
)
from defect_kernel.exceptions import DefectNoConflictError, DefectQtyChangedError
from defect_kernel.logging_config import LogContext, get_logger
from defect_kernel.selectors.candidate_selector import CandidateSelector
from defect_kernel.services.commit_executor import CommitExecutor
from defect_kernel.services.defect_number_service import DefectNumberService
from defect_kernel.services.simulation_planner import SimulationPlanner

logger = get_logger("services.distribution_orchestrator")


@dataclass(frozen=True)
class DistributionSettings:
    """Engine tunables; built from configuration by defect_config.bridges."""

    page_size: int = DEFAULT_PAGE_SIZE
    statement_timeout_seconds: int = 30
    defect_no_width: int = 4

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.statement_timeout_seconds < 0:
            raise ValueError("statement_timeout_seconds must not be negative")
        if self.defect_no_width <= 0:
            raise ValueError("defect_no_width must be positive")


class DistributionOrchestrator:
    """
    Runs simulate-then-commit for one request inside one transaction.

    Each concurrent distribution needs its own orchestrator and session.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: DistributionSettings | None = None,
        auto_commit: bool = True,
        defect_numbers: DefectNumberService | None = None,
        selector: CandidateSelector | None = None,
    ):
        """
        Args:
            session: SQLAlchemy session; its transaction is the distribution's.
            clock: Clock for defect numbers and update stamps. Defaults to
                SystemClock (UTC).
            settings: Page size, statement timeout, defect number width.
            auto_commit: If True (default), commit on OK and roll back on
                every other outcome.
            defect_numbers: Override the defect number generator.
            selector: Override the candidate selector.
        """
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or DistributionSettings()
        self._auto_commit = auto_commit

        self._selector = selector or CandidateSelector(session)
        self._numbers = defect_numbers or DefectNumberService(
            session, self._clock, width=self._settings.defect_no_width
        )
        self._planner = SimulationPlanner(
            self._selector, page_size=self._settings.page_size
        )
        self._executor = CommitExecutor(
            session,
            self._selector,
            self._numbers,
            self._clock,
            page_size=self._settings.page_size,
        )

    def simulate(self, request: DistributionRequest) -> SimulationPlan:
        """Dry run only.  Ends its read transaction when auto_commit is on."""
        try:
            self._apply_statement_timeout()
            return self._planner.simulate(request.order_filter, request.defect_qty)
        finally:
            if self._auto_commit:
                self._session.rollback()

    def distribute(self, request: DistributionRequest) -> DistributionResult:
        """
        Distribute ``request.defect_qty`` over the request's candidate orders.

        Returns:
            DistributionResult with status OK, EXCEEDED, CHANGED or
            DEFECT_NO_CONFLICT.

        Raises:
            Any unexpected (infrastructure) error, after rolling back.
        """
        with LogContext.bind(
            request_id=str(uuid4()),
            plant=request.plant,
            work_center=request.work_center,
            actor=request.creator,
        ):
            logger.info(
                "distribution_started",
                extra={
                    "line_cd": request.line_cd,
                    "material_code": request.material_code,
                    "requested_qty": request.defect_qty,
                    "mode": request.mode.value,
                },
            )
            t0 = time.monotonic()
            try:
                result = self._do_distribute(request)
                if result.is_success:
                    if self._auto_commit:
                        self._session.commit()
                        logger.debug("distribution_committed")
                else:
                    self._rollback()
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                self._rollback()
                logger.error(
                    "distribution_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "distribution_completed",
                extra={
                    "status": result.status.value,
                    "duration_ms": duration_ms,
                    "total_applied": result.total_applied,
                    "not_applied_qty": result.not_applied_qty,
                    "orders": len(result.allocations),
                },
            )
            return result

    def _do_distribute(self, request: DistributionRequest) -> DistributionResult:
        """Internal distribution logic (without transaction management)."""
        self._apply_statement_timeout()

        plan = self._planner.simulate(request.order_filter, request.defect_qty)
        if not plan.is_sufficient:
            logger.info(
                "distribution_exceeded",
                extra={
                    "total_capacity": plan.total_capacity,
                    "not_applied_qty": plan.not_applied_qty,
                },
            )
            return DistributionResult.exceeded(plan)

        try:
            outcome = self._executor.execute(request)
        except DefectQtyChangedError as e:
            logger.warning(
                "distribution_changed",
                extra={
                    "total_capacity": e.total_capacity,
                    "not_applied_qty": e.not_applied_qty,
                },
            )
            return DistributionResult.changed(e)
        except DefectNoConflictError as e:
            return DistributionResult.defect_no_conflict(request.defect_qty, e)

        return DistributionResult.ok(
            request.defect_qty, outcome.allocations, outcome.logs
        )

    def _apply_statement_timeout(self) -> None:
        """Bound lock hold time for the rest of this transaction (PostgreSQL)."""
        seconds = self._settings.statement_timeout_seconds
        dialect = self._session.get_bind().dialect.name
        if dialect != "postgresql" or seconds == 0:
            logger.debug(
                "statement_timeout_skipped",
                extra={"dialect": dialect, "seconds": seconds},
            )
            return
        # set_config(..., true) is SET LOCAL with bind parameters
        self._session.execute(
            select(func.set_config("statement_timeout", f"{seconds}s", True))
        )

    def _rollback(self) -> None:
        if self._auto_commit:
            self._session.rollback()
            logger.debug("transaction_rolled_back")

