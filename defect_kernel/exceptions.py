"""
Typed exception hierarchy for the defect kernel.

Every error carries a class-level ``code`` (machine readable, API safe)
and its context as attributes, so callers catch by type and read
structured data instead of parsing messages.

    DefectKernelError (base)
    |
    +-- RequestValidationError
    |
    +-- DistributionError
        +-- DefectQtyExceededError
        +-- DefectQtyChangedError
        +-- DefectNoConflictError

Category        | Code                 | When Raised
----------------|----------------------|------------------------------------------
Validation      | VALIDATION_ERROR     | Malformed request, before any transaction
Distribution    | DEFECT_QTY_EXCEEDED  | Simulation found too little capacity
                | DEFECT_QTY_CHANGED   | Capacity shrank between simulate and commit
                | DEFECT_NO_CONFLICT   | Generated defect_no already stored

Remediation differs per category:

- DefectQtyExceededError -> user facing "not enough open quantity"
- DefectQtyChangedError  -> retry the whole request, capacity moved
- DefectNoConflictError  -> retry the whole request silently
- anything else          -> opaque infrastructure failure, logged
"""

from decimal import Decimal
from typing import Any


class DefectKernelError(Exception):
    """
    Base exception for all defect kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "DEFECT_KERNEL_ERROR"

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class RequestValidationError(DefectKernelError):
    """Distribution request is malformed or missing a required field."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid request field '{field}': {reason}")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["field"] = self.field
        return payload


# Distribution errors


class DistributionError(DefectKernelError):
    """Base exception for distribution outcomes that are not applied."""

    code: str = "DISTRIBUTION_ERROR"


class _ShortfallError(DistributionError):
    """Shared payload for the two shortfall kinds."""

    def __init__(
        self,
        total_requested: Decimal,
        total_capacity: Decimal,
        not_applied_qty: Decimal,
        allocations: tuple[Any, ...] = (),
    ):
        self.total_requested = total_requested
        self.total_capacity = total_capacity
        self.not_applied_qty = not_applied_qty
        self.allocations = tuple(allocations)
        super().__init__(self._describe())

    def _describe(self) -> str:
        raise NotImplementedError


class DefectQtyExceededError(_ShortfallError):
    """Open capacity across candidate orders is below the requested quantity."""

    code: str = "DEFECT_QTY_EXCEEDED"

    def _describe(self) -> str:
        return (
            f"Defect quantity {self.total_requested} exceeds available "
            f"capacity {self.total_capacity} (not applied: {self.not_applied_qty})"
        )


class DefectQtyChangedError(_ShortfallError):
    """Capacity was consumed concurrently after simulation passed."""

    code: str = "DEFECT_QTY_CHANGED"

    def _describe(self) -> str:
        return (
            f"Capacity changed during commit: applied {self.total_capacity} "
            f"of {self.total_requested} (not applied: {self.not_applied_qty})"
        )


class DefectNoConflictError(DistributionError):
    """Generated defect number collided with an existing defect result."""

    code: str = "DEFECT_NO_CONFLICT"

    def __init__(self, defect_no: str):
        self.defect_no = defect_no
        super().__init__(f"defect_no unique conflict: {defect_no}")
