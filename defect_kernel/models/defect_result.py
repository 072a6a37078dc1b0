"""
DefectResult -- append-only log of committed defect allocations.

One row is written per order an allocation was applied to.  Rows are never
updated or deleted; corrections are new rows.  The unique constraint on
``defect_no`` is what detects two transactions that generated the same
number concurrently.
"""

from decimal import Decimal

from sqlalchemy import Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from defect_kernel.db.base import ProvenanceBase

DEFECT_NO_CONSTRAINT = "uq_defect_results_defect_no"


class DefectResult(ProvenanceBase):
    """
    A committed defect (or return) allocation against one order.

    ``defect_qty`` equals the allocation's applicable quantity.  The
    descriptive columns are carried through from the request unchanged.
    """

    __tablename__ = "defect_results"

    __table_args__ = (
        UniqueConstraint("defect_no", name=DEFECT_NO_CONSTRAINT),
        Index("idx_defect_results_plant_date", "plant_cd", "defect_form", "defect_date"),
        Index("idx_defect_results_order", "plant_cd", "order_number"),
    )

    defect_no: Mapped[str] = mapped_column(String(20), nullable=False)

    plant_cd: Mapped[str] = mapped_column(String(10), nullable=False)
    defect_form: Mapped[str] = mapped_column(String(10), nullable=False)
    defect_date: Mapped[str] = mapped_column(String(8), nullable=False)

    work_center: Mapped[str] = mapped_column(String(20), nullable=False)
    line_cd: Mapped[str] = mapped_column(String(20), nullable=False)
    machine_cd: Mapped[str | None] = mapped_column(String(20), nullable=True)
    material_code: Mapped[str] = mapped_column(String(40), nullable=False)
    component_code: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # L / R side of a pair
    division: Mapped[str | None] = mapped_column(String(10), nullable=True)
    defect_qty: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False)
    defect_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    # S, R or Q; R selects return mode
    defect_decision: Mapped[str | None] = mapped_column(String(10), nullable=True)
    defect_source: Mapped[str | None] = mapped_column(String(40), nullable=True)
    defect_check: Mapped[str | None] = mapped_column(String(40), nullable=True)

    mold_code: Mapped[str | None] = mapped_column(String(40), nullable=True)
    mold_size: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mold_set: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mold_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    obs_nu: Mapped[str | None] = mapped_column(String(40), nullable=True)
    obs_seq_nu: Mapped[str | None] = mapped_column(String(20), nullable=True)

    order_number: Mapped[str] = mapped_column(String(40), nullable=False)
    po_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    aps_id: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # Component order provenance, return mode only
    prev_po_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    prev_aps_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    prev_plant_cd: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def __repr__(self) -> str:
        return f"<DefectResult {self.defect_no} {self.order_number} qty={self.defect_qty}>"
