"""
Temporal slot model.

A ``TimeSlot`` is a half-open ``[start, end)`` interval on one date, scoped to
a staff member and a branch. It is a pure value type.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Union

from salon_engine.core.exceptions import InvalidInterval


@dataclass(frozen=True)
class TimeSlot:
    """Staff- and branch-scoped time interval on a single day."""

    date: date
    start: time
    end: time
    staff_id: str
    branch_id: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(
                "Slot start must be before its end",
                {
                    "date": self.date.isoformat(),
                    "start": self.start.isoformat(),
                    "end": self.end.isoformat(),
                    "staff_id": self.staff_id,
                },
            )

    @classmethod
    def from_duration(
        cls,
        on: date,
        start: time,
        duration_minutes: int,
        staff_id: str,
        branch_id: Optional[str] = None,
    ) -> "TimeSlot":
        """Build a slot of ``duration_minutes`` starting at ``start``.

        Slots never cross midnight.
        """
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidInterval(
                "Duration must be a positive number of minutes",
                {"duration_minutes": duration_minutes},
            )
        start_dt = datetime.combine(on, start)
        end_dt = start_dt + timedelta(minutes=duration_minutes)
        if end_dt.date() != on:
            raise InvalidInterval(
                "Slot cannot reach or cross midnight",
                {
                    "date": on.isoformat(),
                    "start": start.isoformat(),
                    "duration_minutes": duration_minutes,
                },
            )
        return cls(on, start, end_dt.time(), staff_id, branch_id)

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.date, self.start)

    @property
    def end_datetime(self) -> datetime:
        return datetime.combine(self.date, self.end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_datetime - self.start_datetime).total_seconds() // 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """True iff same date, same staff and the half-open intervals intersect."""
        if self.date != other.date or self.staff_id != other.staff_id:
            return False
        if self.start >= self.end or other.start >= other.end:
            return False
        return self.start < other.end and other.start < self.end

    def contains(self, point: Union[time, datetime]) -> bool:
        if isinstance(point, datetime):
            if point.date() != self.date:
                return False
            point = point.time()
        return self.start <= point < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "staff_id": self.staff_id,
            "branch_id": self.branch_id,
        }


@dataclass(frozen=True)
class WorkingHours:
    """Opening and closing time of a working day."""

    open: time
    close: time

    def __post_init__(self):
        if self.open >= self.close:
            raise InvalidInterval(
                "Working hours must open before they close",
                {"open": self.open.isoformat(), "close": self.close.isoformat()},
            )
