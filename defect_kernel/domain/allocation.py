"""
Allocation pass -- the scan-and-allocate loop shared by both phases.

Responsibility:
    Walks candidate pages in the selector's stable order and offers each
    order with open capacity ``min(remaining, still_needed)``.  What "apply"
    means is delegated to an ``AllocationApplier``: the dry-run applier just
    records the offer, the commit applier performs the conditional update.
    Sharing the loop is what keeps simulation and commit visiting orders in
    the same sequence.

Architecture position:
    Kernel > Domain.  No I/O of its own; the page source and the applier
    bring any database access.

Termination:
    Stops as soon as nothing is still needed, or when a page comes back
    empty.  A page shorter than the limit is still processed; the next
    (empty) fetch ends the pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from defect_kernel.domain.capacity import as_quantity, remaining_capacity
from defect_kernel.domain.dtos import AllocationEntry, OrderFilter, OrderSnapshot

DEFAULT_PAGE_SIZE = 200


class CandidateSource(Protocol):
    def fetch_page(
        self, order_filter: OrderFilter, limit: int, offset: int
    ) -> tuple[OrderSnapshot, ...]: ...


class AllocationApplier(Protocol):
    def apply(
        self, snapshot: OrderSnapshot, alloc: Decimal, still_needed: Decimal
    ) -> AllocationEntry | None:
        """Apply ``alloc`` to the order; None means the order was skipped."""
        ...


class DryRunApplier:
    """Accepts every offer as-is.  Never touches the database."""

    def apply(
        self, snapshot: OrderSnapshot, alloc: Decimal, still_needed: Decimal
    ) -> AllocationEntry | None:
        return AllocationEntry(
            order_number=snapshot.order_number,
            applicable_qty=alloc,
            remain_after=remaining_capacity(snapshot) - alloc,
        )


@dataclass(frozen=True)
class PassResult:
    allocations: tuple[AllocationEntry, ...]
    applied_qty: Decimal
    still_needed: Decimal
    pages_scanned: int


def run_allocation_pass(
    source: CandidateSource,
    order_filter: OrderFilter,
    requested_qty: Decimal,
    applier: AllocationApplier,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PassResult:
    """Distribute ``requested_qty`` over candidates through ``applier``."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    requested_qty = as_quantity(requested_qty)
    still_needed = requested_qty
    allocations: list[AllocationEntry] = []
    page = 0

    while still_needed > 0:
        candidates = source.fetch_page(
            order_filter, limit=page_size, offset=page * page_size
        )
        page += 1
        if not candidates:
            break

        for snapshot in candidates:
            if still_needed <= 0:
                break
            remaining = remaining_capacity(snapshot)
            if remaining <= 0:
                continue

            entry = applier.apply(snapshot, min(remaining, still_needed), still_needed)
            if entry is None:
                continue
            allocations.append(entry)
            still_needed -= entry.applicable_qty

    return PassResult(
        allocations=tuple(allocations),
        applied_qty=requested_qty - still_needed,
        still_needed=still_needed,
        pages_scanned=page,
    )
