"""
DTOs -- immutable data structures flowing through a distribution.

Responsibility:
    Defines the request (DistributionRequest, DefectLogDetails), the
    read-side order view (OrderSnapshot), the per-order allocation
    (AllocationEntry), the simulation plan, and the tagged result
    (DistributionStatus / DistributionResult).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``OrderSnapshot.from_row`` is a
    boundary converter invoked only by selectors.

Data flow:
    DistributionRequest -> SimulationPlan -> CommitOutcome -> DistributionResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from defect_kernel.domain.capacity import (
    QUANTITY_SCALE,
    ZERO,
    as_quantity,
    decimal_places,
    quantity_to_json,
)
from defect_kernel.exceptions import (
    DefectNoConflictError,
    DefectQtyChangedError,
    DefectQtyExceededError,
)

RETURN_DECISION = "R"

_SNAPSHOT_QUANTITIES = (
    "order_qty",
    "good_qty",
    "defect_qty",
    "return_qty",
    "labtest_qty",
)


class AllocationMode(str, Enum):
    """
    Which consumed-quantity column an allocation increments.

    The same engine serves both modes; only the target column differs.
    """

    DEFECT = "defect"
    RETURN = "return"

    @classmethod
    def from_decision(cls, defect_decision: str | None) -> AllocationMode:
        return cls.RETURN if defect_decision == RETURN_DECISION else cls.DEFECT

    @property
    def target_column(self) -> str:
        return "return_qty" if self is AllocationMode.RETURN else "defect_qty"


@dataclass(frozen=True)
class OrderFilter:
    """Candidate filter: one plant, work center, line and material."""

    plant: str
    work_center: str
    line_cd: str
    material_code: str


@dataclass(frozen=True)
class OrderSnapshot:
    """
    One order row as read at a point in time.

    Quantities are already clamped (NULL -> 0).  The snapshot is also the
    precondition of the conditional update: the update only lands if the
    row still holds exactly these consumed quantities.
    """

    plant: str
    order_number: str
    order_qty: Decimal = ZERO
    good_qty: Decimal = ZERO
    defect_qty: Decimal = ZERO
    return_qty: Decimal = ZERO
    labtest_qty: Decimal = ZERO
    po_id: str | None = None
    aps_id: str | None = None

    def __post_init__(self) -> None:
        for name in _SNAPSHOT_QUANTITIES:
            object.__setattr__(self, name, as_quantity(getattr(self, name)))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> OrderSnapshot:
        return cls(
            plant=row["plant"],
            order_number=row["order_number"],
            order_qty=as_quantity(row.get("order_qty")),
            good_qty=as_quantity(row.get("good_qty")),
            defect_qty=as_quantity(row.get("defect_qty")),
            return_qty=as_quantity(row.get("return_qty")),
            labtest_qty=as_quantity(row.get("labtest_qty")),
            po_id=row.get("po_id"),
            aps_id=row.get("aps_id"),
        )


@dataclass(frozen=True)
class DefectLogDetails:
    """Descriptive fields copied verbatim onto every DefectResult row."""

    component_code: str | None = None
    division: str | None = None
    defect_type: str | None = None
    defect_decision: str | None = None
    defect_source: str | None = None
    defect_check: str | None = None
    mold_code: str | None = None
    mold_size: str | None = None
    mold_set: str | None = None
    mold_id: str | None = None
    obs_nu: str | None = None
    obs_seq_nu: str | None = None


@dataclass(frozen=True)
class DistributionRequest:
    """
    A validated request to distribute ``defect_qty`` over matching orders.

    ``defect_date`` is YYYYMMDD.  ``log.defect_decision == "R"`` selects
    return mode.
    """

    plant: str
    work_center: str
    line_cd: str
    material_code: str
    defect_qty: Decimal
    defect_form: str
    defect_date: str
    machine_cd: str | None = None
    log: DefectLogDetails = field(default_factory=DefectLogDetails)
    creator: str | None = None
    create_pc: str | None = None

    def __post_init__(self) -> None:
        qty = as_quantity(self.defect_qty)
        if not qty.is_finite() or qty <= 0:
            raise ValueError(f"defect_qty must be positive, got {self.defect_qty}")
        if decimal_places(qty) > QUANTITY_SCALE:
            raise ValueError(
                f"defect_qty has more than {QUANTITY_SCALE} decimal places: {qty}"
            )
        object.__setattr__(self, "defect_qty", qty)

    @property
    def mode(self) -> AllocationMode:
        return AllocationMode.from_decision(self.log.defect_decision)

    @property
    def order_filter(self) -> OrderFilter:
        return OrderFilter(
            plant=self.plant,
            work_center=self.work_center,
            line_cd=self.line_cd,
            material_code=self.material_code,
        )


@dataclass(frozen=True)
class AllocationEntry:
    """How much of the request applies (or would apply) to one order."""

    order_number: str
    applicable_qty: Decimal
    remain_after: Decimal

    def to_payload(self) -> dict[str, Any]:
        return {
            "order_number": self.order_number,
            "applicable_qty": quantity_to_json(self.applicable_qty),
            "remain_after": quantity_to_json(self.remain_after),
        }


@dataclass(frozen=True)
class DefectLogRecord:
    """Summary of one DefectResult row written during commit."""

    defect_no: str
    order_number: str
    defect_qty: Decimal

    def to_payload(self) -> dict[str, Any]:
        return {
            "defect_no": self.defect_no,
            "order_number": self.order_number,
            "defect_qty": quantity_to_json(self.defect_qty),
        }


@dataclass(frozen=True)
class SimulationPlan:
    """Dry-run verdict: how much capacity exists and where it would go."""

    total_requested: Decimal
    total_capacity: Decimal
    not_applied_qty: Decimal
    allocations: tuple[AllocationEntry, ...]

    @property
    def is_sufficient(self) -> bool:
        return self.total_capacity >= self.total_requested

    def to_payload(self) -> dict[str, Any]:
        return {
            "totalRequested": quantity_to_json(self.total_requested),
            "totalCapacity": quantity_to_json(self.total_capacity),
            "notAppliedQty": quantity_to_json(self.not_applied_qty),
            "allocations": [a.to_payload() for a in self.allocations],
        }


class DistributionStatus(str, Enum):
    """Outcome kind of a distribution."""

    OK = "ok"
    EXCEEDED = "exceeded"
    CHANGED = "changed"
    DEFECT_NO_CONFLICT = "defect_no_conflict"


_MESSAGES = {
    DistributionStatus.EXCEEDED: "Defect quantity exceeds available capacity.",
    DistributionStatus.CHANGED: (
        "Available capacity changed while applying; nothing was recorded."
    ),
    DistributionStatus.DEFECT_NO_CONFLICT: "defect_no conflict",
}


@dataclass(frozen=True)
class DistributionResult:
    """
    Result of a distribution.

    EXCEEDED and CHANGED share one shape (advisory allocations plus
    shortfall); only the status and message tell them apart.
    """

    status: DistributionStatus
    total_requested: Decimal
    total_capacity: Decimal = ZERO
    total_applied: Decimal = ZERO
    not_applied_qty: Decimal = ZERO
    allocations: tuple[AllocationEntry, ...] = ()
    logs: tuple[DefectLogRecord, ...] = ()
    defect_no: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == DistributionStatus.OK

    @classmethod
    def ok(
        cls,
        total_requested: Decimal,
        allocations: tuple[AllocationEntry, ...],
        logs: tuple[DefectLogRecord, ...],
    ) -> DistributionResult:
        applied = sum((a.applicable_qty for a in allocations), ZERO)
        return cls(
            status=DistributionStatus.OK,
            total_requested=total_requested,
            total_capacity=applied,
            total_applied=applied,
            allocations=allocations,
            logs=logs,
        )

    @classmethod
    def exceeded(cls, plan: SimulationPlan) -> DistributionResult:
        return cls(
            status=DistributionStatus.EXCEEDED,
            total_requested=plan.total_requested,
            total_capacity=plan.total_capacity,
            not_applied_qty=plan.not_applied_qty,
            allocations=plan.allocations,
            message=_MESSAGES[DistributionStatus.EXCEEDED],
        )

    @classmethod
    def changed(cls, error: DefectQtyChangedError) -> DistributionResult:
        return cls(
            status=DistributionStatus.CHANGED,
            total_requested=error.total_requested,
            total_capacity=error.total_capacity,
            not_applied_qty=error.not_applied_qty,
            allocations=error.allocations,
            message=_MESSAGES[DistributionStatus.CHANGED],
        )

    @classmethod
    def defect_no_conflict(
        cls, total_requested: Decimal, error: DefectNoConflictError
    ) -> DistributionResult:
        return cls(
            status=DistributionStatus.DEFECT_NO_CONFLICT,
            total_requested=total_requested,
            not_applied_qty=total_requested,
            defect_no=error.defect_no,
            message=_MESSAGES[DistributionStatus.DEFECT_NO_CONFLICT],
        )

    def raise_for_status(self) -> None:
        """Raise the typed error matching a non-OK status."""
        if self.status == DistributionStatus.EXCEEDED:
            raise DefectQtyExceededError(
                self.total_requested,
                self.total_capacity,
                self.not_applied_qty,
                self.allocations,
            )
        if self.status == DistributionStatus.CHANGED:
            raise DefectQtyChangedError(
                self.total_requested,
                self.total_capacity,
                self.not_applied_qty,
                self.allocations,
            )
        if self.status == DistributionStatus.DEFECT_NO_CONFLICT:
            raise DefectNoConflictError(self.defect_no or "")

    def to_payload(self) -> dict[str, Any]:
        """Transport form, keys as the shop-floor clients expect them."""
        if self.status == DistributionStatus.OK:
            return {
                "totalRequested": quantity_to_json(self.total_requested),
                "totalApplied": quantity_to_json(self.total_applied),
                "allocations": [a.to_payload() for a in self.allocations],
                "logs": [log.to_payload() for log in self.logs],
            }
        if self.status == DistributionStatus.DEFECT_NO_CONFLICT:
            return {
                "code": DefectNoConflictError.code,
                "message": self.message,
            }
        code = (
            DefectQtyExceededError.code
            if self.status == DistributionStatus.EXCEEDED
            else DefectQtyChangedError.code
        )
        return {
            "code": code,
            "message": self.message,
            "totalRequested": quantity_to_json(self.total_requested),
            "totalCapacity": quantity_to_json(self.total_capacity),
            "notAppliedQty": quantity_to_json(self.not_applied_qty),
            "allocations": [a.to_payload() for a in self.allocations],
        }
