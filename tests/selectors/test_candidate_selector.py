"""
Tests for CandidateSelector.

Ordering key is work_date, work_seq, order_number ascending with NULLs
last; capacity does not filter the scan.
"""

from defect_kernel.domain.dtos import OrderFilter
from defect_kernel.selectors.candidate_selector import CandidateSelector

FILTER = OrderFilter(plant="P100", work_center="WC01", line_cd="L1", material_code="MAT-A")


class TestFetchPage:

    def test_filters_on_plant_line_material(self, session, seed_orders):
        seed_orders(
            {"order_qty": 10},
            {"order_qty": 10, "material_code": "MAT-B"},
            {"order_qty": 10, "line_cd": "L2"},
            {"order_qty": 10, "work_center": "WC02"},
            {"order_qty": 10, "plant": "P200"},
        )
        page = CandidateSelector(session).fetch_page(FILTER, limit=10, offset=0)
        assert [s.order_number for s in page] == ["O1"]

    def test_ordering_key(self, session, seed_orders):
        seed_orders(
            {"order_number": "B", "work_date": "20240302", "work_seq": 1, "order_qty": 1},
            {"order_number": "A", "work_date": "20240301", "work_seq": 2, "order_qty": 1},
            {"order_number": "C", "work_date": "20240301", "work_seq": 1, "order_qty": 1},
            {"order_number": "E", "work_date": None, "work_seq": None, "order_qty": 1},
            {"order_number": "D", "work_date": "20240301", "work_seq": 2, "order_qty": 1},
            {"order_number": "F", "work_date": "20240301", "work_seq": None, "order_qty": 1},
        )
        page = CandidateSelector(session).fetch_page(FILTER, limit=10, offset=0)
        assert [s.order_number for s in page] == ["C", "A", "D", "F", "B", "E"]

    def test_includes_orders_without_capacity(self, session, seed_orders):
        seed_orders({"order_qty": 10, "good_qty": 10}, {"order_qty": 5})
        page = CandidateSelector(session).fetch_page(FILTER, limit=10, offset=0)
        assert [s.order_number for s in page] == ["O1", "O2"]

    def test_paging(self, session, seed_orders):
        seed_orders(*({"order_qty": 1} for _ in range(5)))
        selector = CandidateSelector(session)

        pages = [
            [s.order_number for s in selector.fetch_page(FILTER, limit=2, offset=o)]
            for o in (0, 2, 4, 6)
        ]
        assert pages == [["O1", "O2"], ["O3", "O4"], ["O5"], []]

    def test_null_quantities_clamped_in_snapshot(self, session, seed_orders):
        seed_orders({"order_qty": 8, "good_qty": None, "defect_qty": None})
        (snapshot,) = CandidateSelector(session).fetch_page(FILTER, limit=10, offset=0)
        assert snapshot.good_qty == 0
        assert snapshot.defect_qty == 0
        assert snapshot.order_qty == 8


class TestFetchOrder:

    def test_found(self, session, seed_orders):
        seed_orders({"order_qty": 10, "po_id": "PO-1"})
        snapshot = CandidateSelector(session).fetch_order("P100", "O1")
        assert snapshot.po_id == "PO-1"

    def test_missing(self, session, seed_orders):
        seed_orders({"order_qty": 10})
        assert CandidateSelector(session).fetch_order("P100", "NOPE") is None


class TestFindComponentOrder:

    def test_matches_next_order_number(self, session, seed_orders):
        seed_orders(
            {"order_number": "PARENT-1", "order_qty": 10},
            {
                "order_number": "C-1",
                "material_code": "COMP-1",
                "work_center": "WC09",
                "next_order_number": "PARENT-0,PARENT-1",
                "po_id": "PO-C1",
                "aps_id": "APS-C1",
            },
        )
        component = CandidateSelector(session).find_component_order(
            "P100", "PARENT-1", "COMP-1"
        )
        assert component.order_number == "C-1"
        assert component.po_id == "PO-C1"
        assert component.aps_id == "APS-C1"

    def test_wrong_material_not_matched(self, session, seed_orders):
        seed_orders(
            {"order_number": "C-1", "material_code": "COMP-2", "next_order_number": "PARENT-1"},
        )
        assert (
            CandidateSelector(session).find_component_order("P100", "PARENT-1", "COMP-1")
            is None
        )

    def test_like_wildcards_are_literal(self, session, seed_orders):
        seed_orders(
            {"order_number": "C-1", "material_code": "COMP-1", "next_order_number": "PARENTX1"},
        )
        assert (
            CandidateSelector(session).find_component_order("P100", "PARENT_1", "COMP-1")
            is None
        )
