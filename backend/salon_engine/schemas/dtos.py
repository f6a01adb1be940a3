"""
Data Transfer Objects (DTOs) and validation schemas.

Request DTOs validate themselves before any engine mutation; response DTOs
render the wire shape (camelCase keys, floats for money) consumed by the
reporting UI.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from salon_engine.core.exceptions import (
    AmountMismatch,
    InvalidBookingRequest,
    InvalidInterval,
)
from salon_engine.domain.entities import (
    Appointment,
    CommissionSplit,
    Payment,
    PaymentMethod,
    PaymentStatus,
)


def _require(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidBookingRequest(
            f"{field_name} is required", {"field": field_name}
        )


@dataclass
class BookingRequest:
    """DTO for appointment booking requests."""

    salon_id: str
    branch_id: str
    staff_id: str
    client_id: str
    service_id: str
    appointment_date: date
    start_time: time
    end_time: Optional[time] = None  # overrides the service duration when set
    notes: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        for name in ("salon_id", "branch_id", "staff_id", "client_id", "service_id"):
            _require(getattr(self, name), name)
        _require(self.appointment_date, "appointment_date")
        _require(self.start_time, "start_time")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise InvalidInterval(
                "end_time must be after start_time",
                {
                    "start_time": self.start_time.isoformat(),
                    "end_time": self.end_time.isoformat(),
                },
            )


@dataclass
class RescheduleRequest:
    """DTO for moving an appointment to another date, time or staff member."""

    appointment_date: date
    start_time: time
    end_time: Optional[time] = None
    staff_id: Optional[str] = None
    branch_id: Optional[str] = None

    def validate(self) -> None:
        _require(self.appointment_date, "appointment_date")
        _require(self.start_time, "start_time")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise InvalidInterval(
                "end_time must be after start_time",
                {
                    "start_time": self.start_time.isoformat(),
                    "end_time": self.end_time.isoformat(),
                },
            )


@dataclass
class SettlementCallback:
    """Payment-gateway settlement notification."""

    appointment_id: str
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        self.payment_method = PaymentMethod(self.payment_method)
        self.status = PaymentStatus(self.status)

    def validate(self) -> None:
        _require(self.appointment_id, "appointment_id")
        if self.amount is None or self.amount < 0:
            raise InvalidBookingRequest(
                "amount must be a non-negative number", {"field": "amount"}
            )


@dataclass
class AppointmentResponse:
    """DTO for appointment API responses."""

    id: str
    salon_id: str
    branch_id: str
    staff_id: str
    client_id: str
    service_id: str
    status: str
    appointment_date: date
    start_time: time
    end_time: time
    total_price: Decimal
    notes: Optional[str]

    @classmethod
    def from_domain(cls, appointment: Appointment) -> "AppointmentResponse":
        """Create response from domain entity."""
        return cls(
            id=appointment.id,
            salon_id=appointment.salon_id,
            branch_id=appointment.branch_id,
            staff_id=appointment.staff_id,
            client_id=appointment.client_id,
            service_id=appointment.service_id,
            status=appointment.status.value,
            appointment_date=appointment.appointment_date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            total_price=appointment.total_price,
            notes=appointment.notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "salonId": self.salon_id,
            "branchId": self.branch_id,
            "staffId": self.staff_id,
            "clientId": self.client_id,
            "serviceId": self.service_id,
            "status": self.status,
            "appointmentDate": self.appointment_date.isoformat(),
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M"),
            "totalPrice": float(self.total_price),
            "notes": self.notes,
        }


@dataclass
class ReconciliationResult:
    """Outcome of applying one settlement callback."""

    payment: Payment
    warnings: List[AmountMismatch] = field(default_factory=list)
    split: Optional[CommissionSplit] = None
    reversal: Optional[CommissionSplit] = None
    ignored: bool = False

    @property
    def settled(self) -> bool:
        return self.split is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paymentId": self.payment.id,
            "appointmentId": self.payment.appointment_id,
            "status": self.payment.status.value,
            "amount": float(self.payment.amount),
            "amountMismatch": self.payment.amount_mismatch,
            "warnings": [w.to_dict() for w in self.warnings],
            "split": self.split.to_dict() if self.split else None,
            "reversal": self.reversal.to_dict() if self.reversal else None,
            "ignored": self.ignored,
        }


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DateWindow:
    """Inclusive date range used for aggregation."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidInterval(
                "Window start must not be after its end",
                {"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def prior(self) -> "DateWindow":
        """The immediately preceding window of the same length."""
        prior_end = self.start - timedelta(days=1)
        return DateWindow(prior_end - timedelta(days=self.days - 1), prior_end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class DashboardStats:
    total_revenue: Decimal
    revenue_change: float
    total_appointments: int
    appointments_change: float
    total_clients: int
    clients_change: float
    average_rating: float
    rating_change: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRevenue": float(self.total_revenue),
            "revenueChange": self.revenue_change,
            "totalAppointments": self.total_appointments,
            "appointmentsChange": self.appointments_change,
            "totalClients": self.total_clients,
            "clientsChange": self.clients_change,
            "averageRating": self.average_rating,
            "ratingChange": self.rating_change,
        }


@dataclass
class RevenueData:
    date: date
    revenue: Decimal
    appointments: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "revenue": float(self.revenue),
            "appointments": self.appointments,
        }


@dataclass
class ServicePerformance:
    service_id: str
    service_name: str
    bookings: int
    revenue: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serviceId": self.service_id,
            "serviceName": self.service_name,
            "bookings": self.bookings,
            "revenue": float(self.revenue),
        }


@dataclass
class StaffPerformance:
    staff_id: str
    staff_name: str
    appointments: int
    revenue: Decimal
    rating: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staffId": self.staff_id,
            "staffName": self.staff_name,
            "appointments": self.appointments,
            "revenue": float(self.revenue),
            "rating": self.rating,
        }
