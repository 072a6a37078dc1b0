"""Pure domain layer: DTOs, capacity math and the shared allocation pass."""

from defect_kernel.domain.allocation import (
    DEFAULT_PAGE_SIZE,
    DryRunApplier,
    PassResult,
    run_allocation_pass,
)
from defect_kernel.domain.capacity import (
    QUANTITY_SCALE,
    as_quantity,
    quantity_to_json,
    remaining_capacity,
)
from defect_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from defect_kernel.domain.dtos import (
    AllocationEntry,
    AllocationMode,
    DefectLogDetails,
    DefectLogRecord,
    DistributionRequest,
    DistributionResult,
    DistributionStatus,
    OrderFilter,
    OrderSnapshot,
    SimulationPlan,
)
from defect_kernel.domain.request import build_distribution_request

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "QUANTITY_SCALE",
    "AllocationEntry",
    "AllocationMode",
    "Clock",
    "DefectLogDetails",
    "DefectLogRecord",
    "DeterministicClock",
    "DistributionRequest",
    "DistributionResult",
    "DistributionStatus",
    "DryRunApplier",
    "OrderFilter",
    "OrderSnapshot",
    "PassResult",
    "SimulationPlan",
    "SystemClock",
    "as_quantity",
    "build_distribution_request",
    "quantity_to_json",
    "remaining_capacity",
    "run_allocation_pass",
]
