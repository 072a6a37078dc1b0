"""
ProductionOrder -- the order rows defect quantity is distributed against.

Orders are owned by production planning and enter this database through
the order sync; the distribution engine never inserts or deletes them.  The
only writes it performs are increments of ``defect_qty`` or ``return_qty``
through a conditional UPDATE (see CommitExecutor).

Invariant:
    order_qty - good_qty - defect_qty - return_qty - labtest_qty >= 0
    after every committed allocation.  NULL quantity columns read as 0.
"""

from decimal import Decimal

from sqlalchemy import BigInteger, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from defect_kernel.db.base import Base

# Consumed-quantity columns, in the order remaining capacity subtracts them.
CONSUMED_COLUMNS = ("good_qty", "defect_qty", "return_qty", "labtest_qty")


class ProductionOrder(Base):
    """
    One production order detail row.

    Guarantees:
        - (plant, order_number) is unique (uq_prod_order_plant_order).
        - Candidate scans are served by idx_prod_order_candidates, whose
          trailing columns match the scan ordering key.
    """

    __tablename__ = "prod_order_details"

    __table_args__ = (
        UniqueConstraint("plant", "order_number", name="uq_prod_order_plant_order"),
        Index(
            "idx_prod_order_candidates",
            "plant",
            "work_center",
            "line_cd",
            "material_code",
            "work_date",
            "work_seq",
            "order_number",
        ),
    )

    plant: Mapped[str] = mapped_column(String(10), nullable=False)

    order_number: Mapped[str] = mapped_column(String(40), nullable=False)

    work_center: Mapped[str] = mapped_column(String(20), nullable=False)

    line_cd: Mapped[str] = mapped_column(String(20), nullable=False)

    material_code: Mapped[str] = mapped_column(String(40), nullable=False)

    # Planned production day (YYYYMMDD) and sequence within the day
    work_date: Mapped[str | None] = mapped_column(String(8), nullable=True)
    work_seq: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Downstream order(s) this order feeds; free text holding order numbers
    next_order_number: Mapped[str | None] = mapped_column(String(200), nullable=True)

    po_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    aps_id: Mapped[str | None] = mapped_column(String(40), nullable=True)

    order_qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)
    good_qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)
    defect_qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)
    return_qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)
    labtest_qty: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)

    # YYYYMMDD of the last defect/return increment
    qty_update_date: Mapped[str | None] = mapped_column(String(8), nullable=True)

    def __repr__(self) -> str:
        return f"<ProductionOrder {self.plant}/{self.order_number}>"
