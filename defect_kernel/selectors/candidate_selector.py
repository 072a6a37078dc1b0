"""
CandidateSelector -- read access to production orders for distribution.

Responsibility:
    Pages through the orders a distribution may allocate against, re-reads a
    single order after a lost conditional update, and finds the component
    order behind a parent order for return provenance.

Ordering:
    Candidates are ordered by ``work_date, work_seq, order_number``, all
    ascending, NULL dates and sequences last.  ``order_number`` is unique per
    plant, so the key is total: repeated scans of the same filter return
    orders in the same relative order, which is what lets the commit pass
    follow the simulation.

    The scan does NOT filter on remaining capacity.  The commit pass consumes
    capacity as it goes; a capacity filter would shift later rows into
    earlier offsets and the next page would skip them.
"""

from sqlalchemy import select

from defect_kernel.domain.dtos import OrderFilter, OrderSnapshot
from defect_kernel.logging_config import get_logger
from defect_kernel.models.order import ProductionOrder
from defect_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.candidate")

_SNAPSHOT_COLUMNS = (
    ProductionOrder.plant,
    ProductionOrder.order_number,
    ProductionOrder.po_id,
    ProductionOrder.aps_id,
    ProductionOrder.order_qty,
    ProductionOrder.good_qty,
    ProductionOrder.defect_qty,
    ProductionOrder.return_qty,
    ProductionOrder.labtest_qty,
)

_ORDERING = (
    ProductionOrder.work_date.asc().nulls_last(),
    ProductionOrder.work_seq.asc().nulls_last(),
    ProductionOrder.order_number.asc(),
)


class CandidateSelector(BaseSelector):
    """Read-only queries over ProductionOrder returning OrderSnapshot DTOs."""

    def fetch_page(
        self, order_filter: OrderFilter, limit: int, offset: int
    ) -> tuple[OrderSnapshot, ...]:
        """One page of candidate orders; empty tuple when exhausted."""
        stmt = (
            select(*_SNAPSHOT_COLUMNS)
            .where(
                ProductionOrder.plant == order_filter.plant,
                ProductionOrder.work_center == order_filter.work_center,
                ProductionOrder.line_cd == order_filter.line_cd,
                ProductionOrder.material_code == order_filter.material_code,
            )
            .order_by(*_ORDERING)
            .limit(limit)
            .offset(offset)
        )
        rows = self.session.execute(stmt).mappings().all()
        logger.debug(
            "candidate_page_fetched",
            extra={"offset": offset, "limit": limit, "rows": len(rows)},
        )
        return tuple(OrderSnapshot.from_row(row) for row in rows)

    def fetch_order(self, plant: str, order_number: str) -> OrderSnapshot | None:
        """Fresh read of one order, bypassing anything cached in the session."""
        row = self.session.execute(
            select(*_SNAPSHOT_COLUMNS).where(
                ProductionOrder.plant == plant,
                ProductionOrder.order_number == order_number,
            )
        ).mappings().one_or_none()
        return OrderSnapshot.from_row(row) if row is not None else None

    def find_component_order(
        self, plant: str, parent_order_number: str, component_code: str
    ) -> OrderSnapshot | None:
        """
        First order of material ``component_code`` feeding the parent order.

        A component order lists the orders it feeds in ``next_order_number``;
        the parent matches when its number occurs in that text.
        """
        row = self.session.execute(
            select(*_SNAPSHOT_COLUMNS)
            .where(
                ProductionOrder.plant == plant,
                ProductionOrder.material_code == component_code,
                ProductionOrder.next_order_number.contains(
                    parent_order_number, autoescape=True
                ),
            )
            .order_by(*_ORDERING)
            .limit(1)
        ).mappings().one_or_none()
        return OrderSnapshot.from_row(row) if row is not None else None
