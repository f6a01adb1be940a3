"""
Unit tests for the TimeSlot value type.
"""

from datetime import date, datetime, time

import pytest

from salon_engine.core.exceptions import InvalidInterval
from salon_engine.domain.slots import TimeSlot, WorkingHours

DAY = date(2025, 3, 10)


def slot(start: str, end: str, staff_id: str = "stylist-1", on: date = DAY) -> TimeSlot:
    return TimeSlot(on, time.fromisoformat(start), time.fromisoformat(end), staff_id)


@pytest.mark.unit
@pytest.mark.appointment
class TestTimeSlotConstruction:
    def test_start_must_precede_end(self):
        with pytest.raises(InvalidInterval):
            slot("10:30", "10:00")

    def test_zero_length_rejected(self):
        with pytest.raises(InvalidInterval):
            slot("10:00", "10:00")

    def test_invalid_interval_is_a_value_error(self):
        with pytest.raises(ValueError):
            slot("11:00", "10:00")

    def test_from_duration(self):
        built = TimeSlot.from_duration(DAY, time(10, 0), 45, "stylist-1", "branch-1")
        assert built.end == time(10, 45)
        assert built.duration_minutes == 45
        assert built.branch_id == "branch-1"

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_from_duration_rejects_non_positive(self, minutes):
        with pytest.raises(InvalidInterval):
            TimeSlot.from_duration(DAY, time(10, 0), minutes, "stylist-1")

    def test_from_duration_rejects_crossing_midnight(self):
        with pytest.raises(InvalidInterval):
            TimeSlot.from_duration(DAY, time(23, 30), 60, "stylist-1")

    def test_from_duration_rejects_reaching_midnight(self):
        with pytest.raises(InvalidInterval):
            TimeSlot.from_duration(DAY, time(23, 30), 30, "stylist-1")


@pytest.mark.unit
@pytest.mark.appointment
class TestTimeSlotOverlap:
    def test_partial_overlap(self):
        assert slot("10:00", "10:30").overlaps(slot("10:15", "10:45"))

    def test_touching_intervals_do_not_overlap(self):
        assert not slot("10:00", "10:30").overlaps(slot("10:30", "11:00"))
        assert not slot("10:30", "11:00").overlaps(slot("10:00", "10:30"))

    def test_containment_overlaps(self):
        assert slot("09:00", "12:00").overlaps(slot("10:00", "10:30"))

    def test_different_staff_never_overlap(self):
        assert not slot("10:00", "10:30").overlaps(slot("10:00", "10:30", "stylist-2"))

    def test_different_dates_never_overlap(self):
        other_day = slot("10:00", "10:30", on=date(2025, 3, 11))
        assert not slot("10:00", "10:30").overlaps(other_day)

    def test_overlap_is_symmetric(self):
        a, b = slot("10:00", "11:00"), slot("10:59", "12:00")
        assert a.overlaps(b) == b.overlaps(a)


@pytest.mark.unit
@pytest.mark.appointment
class TestTimeSlotContains:
    def test_half_open_bounds(self):
        s = slot("10:00", "10:30")
        assert s.contains(time(10, 0))
        assert s.contains(time(10, 29))
        assert not s.contains(time(10, 30))

    def test_datetime_on_same_date(self):
        s = slot("10:00", "10:30")
        assert s.contains(datetime(2025, 3, 10, 10, 15))
        assert not s.contains(datetime(2025, 3, 11, 10, 15))

    def test_to_dict(self):
        assert slot("09:05", "09:35").to_dict() == {
            "date": "2025-03-10",
            "start": "09:05",
            "end": "09:35",
            "staff_id": "stylist-1",
            "branch_id": None,
        }


@pytest.mark.unit
def test_working_hours_must_open_before_close():
    with pytest.raises(InvalidInterval):
        WorkingHours(time(18, 0), time(9, 0))
