"""
Tests for the shared scan-and-allocate loop.

Uses an in-memory page source, so these run without a database.
"""

import pytest

from defect_kernel.domain.allocation import DryRunApplier, run_allocation_pass
from defect_kernel.domain.dtos import AllocationEntry, OrderFilter, OrderSnapshot

FILTER = OrderFilter(plant="P100", work_center="WC01", line_cd="L1", material_code="MAT-A")


class ListSource:
    """Serves fixed snapshots in pages and records each fetch."""

    def __init__(self, snapshots):
        self.snapshots = list(snapshots)
        self.fetches: list[tuple[int, int]] = []

    def fetch_page(self, order_filter, limit, offset):
        self.fetches.append((limit, offset))
        return tuple(self.snapshots[offset:offset + limit])


def _order(number: str, remaining: int) -> OrderSnapshot:
    return OrderSnapshot(plant="P100", order_number=number, order_qty=remaining)


class TestDryRunPass:

    def test_single_order_covers_request(self):
        source = ListSource([_order("O1", 60)])
        result = run_allocation_pass(source, FILTER, 50, DryRunApplier())

        assert result.still_needed == 0
        assert result.applied_qty == 50
        assert result.allocations == (
            AllocationEntry(order_number="O1", applicable_qty=50, remain_after=10),
        )

    def test_fills_in_candidate_order(self):
        source = ListSource([_order("O1", 30), _order("O2", 20), _order("O3", 50)])
        result = run_allocation_pass(source, FILTER, 40, DryRunApplier())

        assert [(a.order_number, a.applicable_qty) for a in result.allocations] == [
            ("O1", 30),
            ("O2", 10),
        ]
        assert result.allocations[1].remain_after == 10

    def test_shortfall_reports_still_needed(self):
        source = ListSource([_order("O1", 30), _order("O2", 20)])
        result = run_allocation_pass(source, FILTER, 60, DryRunApplier())

        assert result.applied_qty == 50
        assert result.still_needed == 10

    def test_zero_capacity_orders_never_allocated(self):
        source = ListSource([_order("O1", 0), _order("O2", 5)])
        result = run_allocation_pass(source, FILTER, 5, DryRunApplier())

        assert [a.order_number for a in result.allocations] == ["O2"]

    def test_pages_until_satisfied(self):
        source = ListSource([_order(f"O{i}", 3) for i in range(1, 6)])
        result = run_allocation_pass(source, FILTER, 13, DryRunApplier(), page_size=2)

        assert result.applied_qty == 13
        assert result.pages_scanned == 3
        assert source.fetches == [(2, 0), (2, 2), (2, 4)]
        assert result.allocations[-1] == AllocationEntry("O5", 1, 2)

    def test_empty_page_ends_pass(self):
        source = ListSource([_order("O1", 3)])
        result = run_allocation_pass(source, FILTER, 10, DryRunApplier(), page_size=1)

        assert result.still_needed == 7
        assert source.fetches == [(1, 0), (1, 1)]

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValueError, match="page_size"):
            run_allocation_pass(ListSource([]), FILTER, 1, DryRunApplier(), page_size=0)


class TestApplierContract:

    def test_skipped_order_does_not_reduce_need(self):
        class SkipFirst:
            def apply(self, snapshot, alloc, still_needed):
                if snapshot.order_number == "O1":
                    return None
                return AllocationEntry(snapshot.order_number, alloc, 0)

        source = ListSource([_order("O1", 10), _order("O2", 10)])
        result = run_allocation_pass(source, FILTER, 8, SkipFirst())

        assert [a.order_number for a in result.allocations] == ["O2"]
        assert result.still_needed == 0

    def test_partial_apply_moves_to_next_order(self):
        class HalfApplier:
            def apply(self, snapshot, alloc, still_needed):
                return AllocationEntry(snapshot.order_number, alloc // 2, 0)

        source = ListSource([_order("O1", 10), _order("O2", 10)])
        result = run_allocation_pass(source, FILTER, 10, HalfApplier())

        assert [a.applicable_qty for a in result.allocations] == [5, 2]
        assert result.still_needed == 3
