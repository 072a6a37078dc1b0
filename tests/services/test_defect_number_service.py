"""
Tests for DefectNumberService.

Numbers are YYYYMMDD of the plant day plus a zero-padded daily sequence,
one past the highest stored for that day.
"""

from datetime import datetime, timezone

from defect_kernel.models import DefectResult
from defect_kernel.services.defect_number_service import DefectNumberService


def _add_result(session, defect_no: str) -> None:
    session.add(
        DefectResult(
            defect_no=defect_no,
            plant_cd="P100",
            defect_form="PROD",
            defect_date=defect_no[:8],
            work_center="WC01",
            line_cd="L1",
            material_code="MAT-A",
            defect_qty=1,
            order_number="O1",
        )
    )
    session.flush()


class TestDefectNumberService:

    def test_first_number_of_day(self, session, clock):
        number = DefectNumberService(session, clock).next_number()
        assert number.defect_no == "202403150001"

    def test_continues_after_highest(self, session, clock):
        _add_result(session, "202403150001")
        _add_result(session, "202403150007")

        number = DefectNumberService(session, clock).next_number()
        assert number.defect_no == "202403150008"

    def test_other_days_ignored(self, session, clock):
        _add_result(session, "202403140099")

        number = DefectNumberService(session, clock).next_number()
        assert number.defect_no == "202403150001"

    def test_sees_rows_flushed_in_same_transaction(self, session, clock):
        service = DefectNumberService(session, clock)
        _add_result(session, service.next_number().defect_no)

        assert service.next_number().defect_no == "202403150002"

    def test_overflow_past_pad_width(self, session, clock):
        _add_result(session, "202403159999")
        _add_result(session, "2024031510000")

        number = DefectNumberService(session, clock).next_number()
        assert number.defect_no == "2024031510001"

    def test_uses_plant_day_from_clock(self, session, clock):
        clock.set_time(datetime(2024, 12, 31, 23, 59, tzinfo=timezone.utc))
        number = DefectNumberService(session, clock).next_number()
        assert number.day == "20241231"

    def test_custom_width(self, session, clock):
        number = DefectNumberService(session, clock, width=6).next_number()
        assert number.defect_no == "20240315000001"
