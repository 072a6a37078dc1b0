"""ORM models for the defect kernel."""

from defect_kernel.models.defect_result import DEFECT_NO_CONSTRAINT, DefectResult
from defect_kernel.models.order import CONSUMED_COLUMNS, ProductionOrder

__all__ = [
    "CONSUMED_COLUMNS",
    "DEFECT_NO_CONSTRAINT",
    "DefectResult",
    "ProductionOrder",
]
