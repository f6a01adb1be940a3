"""
Availability index: per staff member and date, the sorted set of booked
intervals that still block the calendar (cancelled and no-show appointments
are removed).

Stored intervals never overlap, so their ends are sorted in the same order as
their starts. A candidate slot can therefore only collide with the last stored
interval that starts before the candidate ends, found with one bisection.

The index is not thread-safe on its own; callers hold the staff member's lock
from ``StaffLockRegistry`` around every check-and-mutate sequence.
"""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from salon_engine.core.exceptions import InvalidInterval, NoAvailability, SlotConflict
from salon_engine.domain.slots import TimeSlot, WorkingHours

logger = logging.getLogger(__name__)

BucketKey = Tuple[str, date]


@dataclass(frozen=True)
class BookedInterval:
    start: time
    end: time
    appointment_id: str
    branch_id: Optional[str] = None


class _Bucket:
    """Intervals of one staff member on one date, ordered by start."""

    __slots__ = ("starts", "entries")

    def __init__(self) -> None:
        self.starts: List[time] = []
        self.entries: List[BookedInterval] = []

    def predecessor(self, point: time) -> Optional[BookedInterval]:
        """Last interval starting strictly before ``point``."""
        idx = bisect_left(self.starts, point)
        if idx == 0:
            return None
        return self.entries[idx - 1]

    def add(self, entry: BookedInterval) -> None:
        idx = bisect_right(self.starts, entry.start)
        self.starts.insert(idx, entry.start)
        self.entries.insert(idx, entry)

    def discard(self, appointment_id: str) -> Optional[BookedInterval]:
        for idx, entry in enumerate(self.entries):
            if entry.appointment_id == appointment_id:
                del self.starts[idx]
                del self.entries[idx]
                return entry
        return None


class AvailabilityIndex:
    """Ordered booked intervals keyed by (staff_id, date)."""

    def __init__(self) -> None:
        self._buckets: Dict[BucketKey, _Bucket] = {}
        self._locations: Dict[str, BucketKey] = {}
        self._loaded: Set[BucketKey] = set()

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def is_loaded(self, staff_id: str, on: date) -> bool:
        return (staff_id, on) in self._loaded

    def mark_loaded(self, staff_id: str, on: date) -> None:
        self._loaded.add((staff_id, on))

    def load(self, staff_id: str, on: date, intervals: Iterable[Tuple[TimeSlot, str]]) -> None:
        """Seed a bucket from persisted appointments (slot, appointment_id pairs)."""
        for slot, appointment_id in intervals:
            if appointment_id in self._locations:
                continue
            try:
                self.insert(slot, appointment_id)
            except SlotConflict as e:
                logger.warning(
                    "Persisted appointments overlap; keeping the first one",
                    extra={
                        "context": {
                            "appointment_id": appointment_id,
                            "conflicting_appointment_id": e.conflicting_appointment_id,
                            "staff_id": staff_id,
                            "date": on.isoformat(),
                        }
                    },
                )
        self.mark_loaded(staff_id, on)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_conflict(self, slot: TimeSlot) -> Optional[BookedInterval]:
        """The stored interval overlapping ``slot``, if any."""
        bucket = self._buckets.get((slot.staff_id, slot.date))
        if bucket is None:
            return None
        candidate = bucket.predecessor(slot.end)
        if candidate is not None and candidate.end > slot.start:
            return candidate
        return None

    def is_free(self, slot: TimeSlot) -> bool:
        return self.find_conflict(slot) is None

    def intervals(self, staff_id: str, on: date) -> List[BookedInterval]:
        bucket = self._buckets.get((staff_id, on))
        return list(bucket.entries) if bucket else []

    def contains(self, appointment_id: str) -> bool:
        return appointment_id in self._locations

    def slot_of(self, appointment_id: str) -> Optional[TimeSlot]:
        key = self._locations.get(appointment_id)
        if key is None:
            return None
        staff_id, on = key
        for entry in self._buckets[key].entries:
            if entry.appointment_id == appointment_id:
                return TimeSlot(on, entry.start, entry.end, staff_id, entry.branch_id)
        return None

    def next_free(
        self,
        staff_id: str,
        on: date,
        duration_minutes: int,
        working_hours: WorkingHours,
        branch_id: Optional[str] = None,
        not_before: Optional[time] = None,
    ) -> TimeSlot:
        """Earliest slot of ``duration_minutes`` inside the working day.

        Raises:
            NoAvailability: no gap of that width is left in the day.
        """
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidInterval(
                "Duration must be a positive number of minutes",
                {"duration_minutes": duration_minutes},
            )

        width = timedelta(minutes=duration_minutes)
        close = datetime.combine(on, working_hours.close)
        cursor = datetime.combine(on, working_hours.open)
        if not_before is not None and not_before > working_hours.open:
            cursor = datetime.combine(on, not_before)

        for entry in self.intervals(staff_id, on):
            entry_start = datetime.combine(on, entry.start)
            entry_end = datetime.combine(on, entry.end)
            if entry_end <= cursor:
                continue
            if entry_start - cursor >= width:
                break
            cursor = max(cursor, entry_end)

        if cursor + width <= close:
            return TimeSlot(
                on, cursor.time(), (cursor + width).time(), staff_id, branch_id
            )

        raise NoAvailability(
            "No free slot left in the working day",
            {
                "staff_id": staff_id,
                "date": on.isoformat(),
                "duration_minutes": duration_minutes,
                "working_hours": [
                    working_hours.open.isoformat(),
                    working_hours.close.isoformat(),
                ],
            },
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, slot: TimeSlot, appointment_id: str) -> None:
        """Add a booked interval.

        Raises:
            SlotConflict: the slot overlaps a stored interval.
        """
        conflict = self.find_conflict(slot)
        if conflict is not None:
            raise SlotConflict(conflict.appointment_id, slot)
        if appointment_id in self._locations:
            raise ValueError(f"Appointment {appointment_id} is already indexed")

        key = (slot.staff_id, slot.date)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket()
        bucket.add(BookedInterval(slot.start, slot.end, appointment_id, slot.branch_id))
        self._locations[appointment_id] = key

    def remove(self, target: Union[str, TimeSlot]) -> Optional[TimeSlot]:
        """Drop an interval by appointment id or by its exact slot.

        Returns the freed slot, or None when nothing matched.
        """
        if isinstance(target, TimeSlot):
            appointment_id = self._appointment_at(target)
            if appointment_id is None:
                return None
        else:
            appointment_id = target

        key = self._locations.pop(appointment_id, None)
        if key is None:
            return None
        bucket = self._buckets[key]
        entry = bucket.discard(appointment_id)
        if not bucket.entries:
            del self._buckets[key]
        if entry is None:
            return None
        staff_id, on = key
        return TimeSlot(on, entry.start, entry.end, staff_id, entry.branch_id)

    def _appointment_at(self, slot: TimeSlot) -> Optional[str]:
        bucket = self._buckets.get((slot.staff_id, slot.date))
        if bucket is None:
            return None
        for entry in bucket.entries:
            if entry.start == slot.start and entry.end == slot.end:
                return entry.appointment_id
        return None

    def __len__(self) -> int:
        return len(self._locations)
