"""
SimulationPlanner -- dry-run distribution over candidate orders.

Runs the shared allocation pass with the dry-run applier and turns it into
a capacity verdict.  Reads only; the orchestrator uses the verdict to reject
requests that cannot be covered before any write lock is taken.
"""

from decimal import Decimal

from defect_kernel.domain.allocation import (
    DEFAULT_PAGE_SIZE,
    CandidateSource,
    DryRunApplier,
    run_allocation_pass,
)
from defect_kernel.domain.capacity import ZERO, as_quantity
from defect_kernel.domain.dtos import OrderFilter, SimulationPlan
from defect_kernel.logging_config import get_logger

logger = get_logger("services.simulation_planner")


class SimulationPlanner:
    """
    Builds the advisory plan for a request.

    Guarantees:
        - No writes; the same inputs with no intervening writes produce an
          identical plan.
        - ``not_applied_qty == max(0, requested - total_capacity)``.
        - Orders without open capacity never appear in the plan.
    """

    def __init__(self, source: CandidateSource, page_size: int = DEFAULT_PAGE_SIZE):
        self._source = source
        self._page_size = page_size

    def simulate(self, order_filter: OrderFilter, requested_qty: Decimal) -> SimulationPlan:
        requested_qty = as_quantity(requested_qty)
        result = run_allocation_pass(
            self._source,
            order_filter,
            requested_qty,
            DryRunApplier(),
            page_size=self._page_size,
        )
        plan = SimulationPlan(
            total_requested=requested_qty,
            total_capacity=result.applied_qty,
            not_applied_qty=max(ZERO, requested_qty - result.applied_qty),
            allocations=result.allocations,
        )
        logger.debug(
            "simulation_completed",
            extra={
                "requested_qty": requested_qty,
                "total_capacity": plan.total_capacity,
                "orders": len(plan.allocations),
                "pages": result.pages_scanned,
            },
        )
        return plan
