"""
CommitExecutor -- applies a distribution with optimistic per-order updates.

Responsibility:
    Re-scans candidates (the simulation plan is advisory, not binding) and,
    for each order with open capacity, increments the mode's target column
    through a conditional UPDATE, then appends a DefectResult row with a
    fresh defect number.

Architecture position:
    Kernel > Services.  Flushes inside the caller's transaction; never
    commits or rolls back.  DistributionOrchestrator owns the boundary.

Contention policy (retry once, then skip):
    The UPDATE only lands if the row still holds exactly the quantities of
    the snapshot it was computed from.  When it affects no row, the order is
    re-read once and the UPDATE retried once with the allocation recomputed
    from the fresh row.  If that also misses, or the order has no capacity
    left, the order is skipped and the pass moves to the next candidate.
    One contended row never fails the request by itself; only a total
    shortfall after every page does (DefectQtyChangedError).

Failure modes:
    - DefectQtyChangedError: pages exhausted with quantity still unapplied.
    - DefectNoConflictError: INSERT hit the defect_no unique constraint.
    - Any other database error propagates unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import Numeric, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from defect_kernel.domain.allocation import DEFAULT_PAGE_SIZE, run_allocation_pass
from defect_kernel.domain.capacity import QUANTITY_SCALE, ZERO, remaining_capacity
from defect_kernel.domain.clock import Clock
from defect_kernel.domain.dtos import (
    AllocationEntry,
    AllocationMode,
    DefectLogRecord,
    DistributionRequest,
    OrderSnapshot,
)
from defect_kernel.exceptions import DefectNoConflictError, DefectQtyChangedError
from defect_kernel.logging_config import get_logger
from defect_kernel.models.defect_result import DEFECT_NO_CONSTRAINT, DefectResult
from defect_kernel.models.order import CONSUMED_COLUMNS, ProductionOrder
from defect_kernel.selectors.candidate_selector import CandidateSelector
from defect_kernel.services.base import BaseService
from defect_kernel.services.defect_number_service import DefectNumberService

logger = get_logger("services.commit_executor")

_PRECONDITION_COLUMNS = ("order_qty",) + CONSUMED_COLUMNS

_REMAINING_EXPR = (
    func.coalesce(ProductionOrder.order_qty, 0)
    - func.coalesce(ProductionOrder.good_qty, 0)
    - func.coalesce(ProductionOrder.defect_qty, 0)
    - func.coalesce(ProductionOrder.return_qty, 0)
    - func.coalesce(ProductionOrder.labtest_qty, 0)
)


def _rounded(expr):
    # SQLite keeps Numeric as REAL; compare at the stored scale
    return func.round(expr, QUANTITY_SCALE, type_=Numeric(18, QUANTITY_SCALE))


@dataclass(frozen=True)
class CommitOutcome:
    allocations: tuple[AllocationEntry, ...]
    logs: tuple[DefectLogRecord, ...]

    @property
    def applied_qty(self) -> Decimal:
        return sum((a.applicable_qty for a in self.allocations), ZERO)


def is_defect_no_violation(exc: IntegrityError) -> bool:
    """True when the integrity error is the defect_no unique constraint."""
    message = str(exc.orig)
    # PostgreSQL names the constraint, SQLite names table.column
    return DEFECT_NO_CONSTRAINT in message or "defect_results.defect_no" in message


class CommitExecutor(BaseService):
    """Applies a request's quantity to orders; flush-only."""

    def __init__(
        self,
        session: Session,
        selector: CandidateSelector,
        numbers: DefectNumberService,
        clock: Clock,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        super().__init__(session)
        self._selector = selector
        self._numbers = numbers
        self._clock = clock
        self._page_size = page_size

    def execute(self, request: DistributionRequest) -> CommitOutcome:
        """
        Apply ``request.defect_qty`` across candidate orders.

        Postconditions (on return):
            - sum of applicable_qty == request.defect_qty
            - one DefectResult flushed per allocation

        Raises:
            DefectQtyChangedError: not everything could be applied; the
                caller must roll back the transaction.
            DefectNoConflictError: defect_no collision; roll back.
        """
        applier = _ConditionalUpdateApplier(self, request)
        result = run_allocation_pass(
            self._selector,
            request.order_filter,
            request.defect_qty,
            applier,
            page_size=self._page_size,
        )

        if result.still_needed > 0:
            logger.warning(
                "commit_shortfall",
                extra={
                    "requested_qty": request.defect_qty,
                    "applied_qty": result.applied_qty,
                    "not_applied_qty": result.still_needed,
                },
            )
            raise DefectQtyChangedError(
                total_requested=request.defect_qty,
                total_capacity=result.applied_qty,
                not_applied_qty=result.still_needed,
                allocations=result.allocations,
            )

        return CommitOutcome(allocations=result.allocations, logs=tuple(applier.logs))

    # -- row operations -----------------------------------------------------

    def try_increment(
        self, snapshot: OrderSnapshot, qty: Decimal, mode: AllocationMode
    ) -> bool:
        """
        Conditional UPDATE: add ``qty`` to the mode's column only if the row
        still matches ``snapshot`` and has at least ``qty`` open.

        The new column value is the snapshot's value plus ``qty``; the
        precondition pins the row to the snapshot, so this is an increment.
        """
        column = mode.target_column
        target = getattr(ProductionOrder, column)
        stmt = (
            update(ProductionOrder)
            .where(
                ProductionOrder.plant == snapshot.plant,
                ProductionOrder.order_number == snapshot.order_number,
                *(
                    _rounded(func.coalesce(getattr(ProductionOrder, name), 0))
                    == getattr(snapshot, name)
                    for name in _PRECONDITION_COLUMNS
                ),
                _rounded(_REMAINING_EXPR) >= qty,
            )
            .values(
                {
                    target: getattr(snapshot, column) + qty,
                    ProductionOrder.qty_update_date: self._clock.today_yyyymmdd(),
                }
            )
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def reread(self, snapshot: OrderSnapshot) -> OrderSnapshot | None:
        """Fresh copy of the order after a lost update."""
        return self._selector.fetch_order(snapshot.plant, snapshot.order_number)

    def insert_log(
        self,
        request: DistributionRequest,
        snapshot: OrderSnapshot,
        qty: Decimal,
    ) -> DefectLogRecord:
        """Append the DefectResult row for an applied allocation."""
        number = self._numbers.next_number()
        prev_po_id, prev_aps_id, prev_plant_cd = self._resolve_prev_ids(
            request, snapshot.order_number
        )
        log = request.log
        row = DefectResult(
            defect_no=number.defect_no,
            plant_cd=request.plant,
            defect_form=request.defect_form,
            defect_date=request.defect_date,
            work_center=request.work_center,
            line_cd=request.line_cd,
            machine_cd=request.machine_cd,
            material_code=request.material_code,
            component_code=log.component_code,
            division=log.division,
            defect_qty=qty,
            defect_type=log.defect_type,
            defect_decision=log.defect_decision,
            defect_source=log.defect_source,
            defect_check=log.defect_check,
            mold_code=log.mold_code,
            mold_size=log.mold_size,
            mold_set=log.mold_set,
            mold_id=log.mold_id,
            obs_nu=log.obs_nu,
            obs_seq_nu=log.obs_seq_nu,
            order_number=snapshot.order_number,
            po_id=snapshot.po_id,
            aps_id=snapshot.aps_id,
            prev_po_id=prev_po_id,
            prev_aps_id=prev_aps_id,
            prev_plant_cd=prev_plant_cd,
            creator=request.creator,
            create_pc=request.create_pc,
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            if is_defect_no_violation(exc):
                logger.warning(
                    "defect_no_conflict",
                    extra={"defect_no": number.defect_no},
                )
                raise DefectNoConflictError(number.defect_no) from exc
            raise

        return DefectLogRecord(
            defect_no=number.defect_no,
            order_number=snapshot.order_number,
            defect_qty=qty,
        )

    def _resolve_prev_ids(
        self, request: DistributionRequest, parent_order_number: str
    ) -> tuple[str | None, str | None, str | None]:
        """Component order provenance; return mode with a component only."""
        component_code = request.log.component_code
        if request.mode is not AllocationMode.RETURN or not component_code:
            return None, None, None

        component = self._selector.find_component_order(
            request.plant, parent_order_number, component_code
        )
        if component is None:
            logger.debug(
                "component_order_not_found",
                extra={
                    "order_number": parent_order_number,
                    "component_code": component_code,
                },
            )
            return None, None, None
        return component.po_id, component.aps_id, component.plant


class _ConditionalUpdateApplier:
    """Commit-side applier for one request; collects the written logs."""

    def __init__(self, executor: CommitExecutor, request: DistributionRequest):
        self._executor = executor
        self._request = request
        self._mode = request.mode
        self.logs: list[DefectLogRecord] = []

    def apply(
        self, snapshot: OrderSnapshot, alloc: Decimal, still_needed: Decimal
    ) -> AllocationEntry | None:
        if self._executor.try_increment(snapshot, alloc, self._mode):
            return self._record(snapshot, alloc, retried=False)

        fresh = self._executor.reread(snapshot)
        fresh_remaining = remaining_capacity(fresh) if fresh is not None else 0
        if fresh is None or fresh_remaining <= 0:
            self._skip(snapshot, reason="no_capacity_after_reread")
            return None

        retry_alloc = min(fresh_remaining, still_needed)
        logger.info(
            "allocation_retry",
            extra={
                "order_number": snapshot.order_number,
                "first_qty": alloc,
                "retry_qty": retry_alloc,
            },
        )
        if not self._executor.try_increment(fresh, retry_alloc, self._mode):
            self._skip(snapshot, reason="retry_missed")
            return None
        return self._record(fresh, retry_alloc, retried=True)

    def _record(
        self, snapshot: OrderSnapshot, qty: Decimal, retried: bool
    ) -> AllocationEntry:
        log = self._executor.insert_log(self._request, snapshot, qty)
        self.logs.append(log)
        entry = AllocationEntry(
            order_number=snapshot.order_number,
            applicable_qty=qty,
            remain_after=remaining_capacity(snapshot) - qty,
        )
        logger.info(
            "allocation_applied",
            extra={
                "order_number": snapshot.order_number,
                "applied_qty": qty,
                "remain_after": entry.remain_after,
                "defect_no": log.defect_no,
                "mode": self._mode.value,
                "retried": retried,
            },
        )
        return entry

    def _skip(self, snapshot: OrderSnapshot, reason: str) -> None:
        logger.info(
            "allocation_skipped",
            extra={"order_number": snapshot.order_number, "reason": reason},
        )
