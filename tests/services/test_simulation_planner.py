"""
Tests for SimulationPlanner.

The plan is advisory and read-only: running it changes nothing and running
it twice gives the same answer.
"""

from defect_kernel.domain.dtos import AllocationEntry
from defect_kernel.selectors.candidate_selector import CandidateSelector
from defect_kernel.services.simulation_planner import SimulationPlanner


class TestSimulationPlanner:

    def test_sufficient_capacity(self, session, seed_orders, make_request):
        seed_orders({"order_qty": 100, "good_qty": 40})
        request = make_request(50)

        plan = SimulationPlanner(CandidateSelector(session)).simulate(
            request.order_filter, request.defect_qty
        )

        assert plan.is_sufficient
        assert plan.total_capacity == 50
        assert plan.not_applied_qty == 0
        assert plan.allocations == (AllocationEntry("O1", 50, 10),)

    def test_insufficient_capacity(self, session, seed_orders, make_request):
        seed_orders({"order_qty": 30}, {"order_qty": 20})
        request = make_request(60)

        plan = SimulationPlanner(CandidateSelector(session)).simulate(
            request.order_filter, request.defect_qty
        )

        assert not plan.is_sufficient
        assert plan.total_requested == 60
        assert plan.total_capacity == 50
        assert plan.not_applied_qty == 10
        assert [a.order_number for a in plan.allocations] == ["O1", "O2"]

    def test_no_candidates(self, session, make_request):
        request = make_request(5)
        plan = SimulationPlanner(CandidateSelector(session)).simulate(
            request.order_filter, request.defect_qty
        )
        assert plan.total_capacity == 0
        assert plan.not_applied_qty == 5
        assert plan.allocations == ()

    def test_skips_full_and_over_reported_orders(self, session, seed_orders, make_request):
        seed_orders(
            {"order_qty": 10, "good_qty": 10},
            {"order_qty": 10, "good_qty": 15},
            {"order_qty": 10},
        )
        request = make_request(4)
        plan = SimulationPlanner(CandidateSelector(session)).simulate(
            request.order_filter, request.defect_qty
        )
        assert [a.order_number for a in plan.allocations] == ["O3"]
        assert all(a.applicable_qty > 0 for a in plan.allocations)
        assert all(a.remain_after >= 0 for a in plan.allocations)

    def test_idempotent_and_read_only(self, session, seed_orders, make_request, order_state):
        seed_orders({"order_qty": 10}, {"order_qty": 10})
        request = make_request(15)
        planner = SimulationPlanner(CandidateSelector(session), page_size=1)

        first = planner.simulate(request.order_filter, request.defect_qty)
        second = planner.simulate(request.order_filter, request.defect_qty)

        assert first == second
        assert order_state("O1")["defect_qty"] == 0
        assert order_state("O2")["defect_qty"] == 0
        assert not session.new and not session.dirty
