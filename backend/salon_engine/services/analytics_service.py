"""
Read-only reporting over completed appointments.

Counted appointments are the ``completed`` ones of a salon (optionally one
branch) inside an inclusive date window whose payment, if any, has not been
refunded. Revenue is the sum of their price snapshots.
"""

import logging
import time as _time
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from salon_engine.core.exceptions import InvalidBookingRequest
from salon_engine.core.logging_config import log_performance
from salon_engine.domain.entities import (
    Appointment,
    AppointmentStatus,
    PaymentStatus,
    Rating,
)
from salon_engine.domain.interfaces import (
    IAppointmentRepository,
    ICatalogReader,
    IPaymentRepository,
    IRatingSource,
    NoRatings,
)
from salon_engine.domain.money import ZERO, Number, to_decimal
from salon_engine.schemas.dtos import (
    DashboardStats,
    DateWindow,
    RevenueData,
    ServicePerformance,
    StaffPerformance,
)

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week", "month")


def percentage_change(current: Number, prior: Number) -> float:
    """Percent change from ``prior`` to ``current``, one decimal.

    A zero prior yields 0 rather than an infinite change.
    """
    current = to_decimal(current)
    prior = to_decimal(prior)
    if prior == 0:
        return 0.0
    return round(float((current - prior) / prior * 100), 1)


def format_change(change: float) -> str:
    """Stat-card label: "+12.5%", "-3%", "0%"."""
    if change == 0:
        return "0%"
    text = f"{change:.1f}".rstrip("0").rstrip(".")
    return f"+{text}%" if change > 0 else f"{text}%"


def _average(values: List[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


class AnalyticsService:
    """Dashboard and performance aggregates for one salon."""

    def __init__(
        self,
        catalog: ICatalogReader,
        appointments: IAppointmentRepository,
        payments: IPaymentRepository,
        ratings: Optional[IRatingSource] = None,
    ):
        self.catalog = catalog
        self.appointments = appointments
        self.payments = payments
        self.ratings = ratings or NoRatings()

    def counted_appointments(
        self, salon_id: str, window: DateWindow, branch_id: Optional[str] = None
    ) -> List[Appointment]:
        completed = self.appointments.list_by_salon_and_date_range(
            salon_id,
            window.start,
            window.end,
            statuses=[AppointmentStatus.COMPLETED],
            branch_id=branch_id,
        )
        if not completed:
            return []

        refunded = {
            payment.appointment_id
            for payment in self.payments.list_by_appointment_ids(
                [a.id for a in completed]
            )
            if payment.status == PaymentStatus.REFUNDED
        }
        return [a for a in completed if a.id not in refunded]

    def dashboard_stats(
        self,
        salon_id: str,
        window: DateWindow,
        prior_window: Optional[DateWindow] = None,
        branch_id: Optional[str] = None,
    ) -> DashboardStats:
        """Headline numbers for ``window`` and their change against the prior window."""
        started = _time.perf_counter()
        prior_window = prior_window or window.prior()

        current = self.counted_appointments(salon_id, window, branch_id)
        prior = self.counted_appointments(salon_id, prior_window, branch_id)

        revenue = self._revenue(current)
        prior_revenue = self._revenue(prior)
        clients = len({a.client_id for a in current})
        prior_clients = len({a.client_id for a in prior})
        rating = _average([r.value for r in self._ratings(salon_id, window)])
        prior_rating = _average([r.value for r in self._ratings(salon_id, prior_window)])

        stats = DashboardStats(
            total_revenue=revenue,
            revenue_change=percentage_change(revenue, prior_revenue),
            total_appointments=len(current),
            appointments_change=percentage_change(len(current), len(prior)),
            total_clients=clients,
            clients_change=percentage_change(clients, prior_clients),
            average_rating=rating,
            rating_change=percentage_change(rating, prior_rating),
        )

        log_performance(
            "dashboard_stats",
            (_time.perf_counter() - started) * 1000,
            salon_id=salon_id,
            record_count=len(current) + len(prior),
        )
        return stats

    def revenue_series(
        self,
        salon_id: str,
        window: DateWindow,
        granularity: str = "day",
        branch_id: Optional[str] = None,
    ) -> List[RevenueData]:
        """Contiguous, zero-filled revenue buckets covering ``window``.

        Day and week buckets are labelled with their first date (weeks count
        from the window start); month buckets with the first of the month.
        """
        if granularity not in GRANULARITIES:
            raise InvalidBookingRequest(
                f"granularity must be one of {', '.join(GRANULARITIES)}",
                {"granularity": granularity},
            )

        labels = self._bucket_labels(window, granularity)
        revenue: Dict[date, Decimal] = {label: ZERO for label in labels}
        counts: Dict[date, int] = {label: 0 for label in labels}

        for appointment in self.counted_appointments(salon_id, window, branch_id):
            label = self._bucket_for(appointment.appointment_date, window, granularity)
            revenue[label] += appointment.total_price
            counts[label] += 1

        return [RevenueData(label, revenue[label], counts[label]) for label in labels]

    def service_performance(
        self, salon_id: str, window: DateWindow, branch_id: Optional[str] = None
    ) -> List[ServicePerformance]:
        bookings: Dict[str, int] = defaultdict(int)
        revenue: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for appointment in self.counted_appointments(salon_id, window, branch_id):
            bookings[appointment.service_id] += 1
            revenue[appointment.service_id] += appointment.total_price

        rows = []
        for service_id, count in bookings.items():
            service = self.catalog.get_service(service_id)
            rows.append(
                ServicePerformance(
                    service_id=service_id,
                    service_name=service.name if service else service_id,
                    bookings=count,
                    revenue=revenue[service_id],
                )
            )
        rows.sort(key=lambda row: (-row.revenue, row.service_id))
        return rows

    def staff_performance(
        self, salon_id: str, window: DateWindow, branch_id: Optional[str] = None
    ) -> List[StaffPerformance]:
        appointments: Dict[str, int] = defaultdict(int)
        revenue: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for appointment in self.counted_appointments(salon_id, window, branch_id):
            appointments[appointment.staff_id] += 1
            revenue[appointment.staff_id] += appointment.total_price

        ratings: Dict[str, List[float]] = defaultdict(list)
        for rating in self._ratings(salon_id, window):
            ratings[rating.staff_id].append(rating.value)

        rows = []
        for staff_id, count in appointments.items():
            staff = self.catalog.get_staff(staff_id)
            rows.append(
                StaffPerformance(
                    staff_id=staff_id,
                    staff_name=staff.name if staff else staff_id,
                    appointments=count,
                    revenue=revenue[staff_id],
                    rating=_average(ratings.get(staff_id, [])),
                )
            )
        rows.sort(key=lambda row: (-row.revenue, row.staff_id))
        return rows

    # Helpers

    @staticmethod
    def _revenue(appointments: Iterable[Appointment]) -> Decimal:
        return sum((a.total_price for a in appointments), ZERO)

    def _ratings(self, salon_id: str, window: DateWindow) -> List[Rating]:
        return [
            r
            for r in self.ratings.ratings_for(salon_id, window.start, window.end)
            if window.contains(r.rated_on)
        ]

    @staticmethod
    def _bucket_labels(window: DateWindow, granularity: str) -> List[date]:
        if granularity == "day":
            return [window.start + timedelta(days=i) for i in range(window.days)]
        if granularity == "week":
            return [
                window.start + timedelta(days=i) for i in range(0, window.days, 7)
            ]
        labels = []
        cursor = _month_start(window.start)
        while cursor <= window.end:
            labels.append(cursor)
            cursor = _next_month(cursor)
        return labels

    @staticmethod
    def _bucket_for(day: date, window: DateWindow, granularity: str) -> date:
        if granularity == "day":
            return day
        if granularity == "week":
            offset = (day - window.start).days // 7 * 7
            return window.start + timedelta(days=offset)
        return _month_start(day)
