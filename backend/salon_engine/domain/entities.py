"""
Domain entities - pure business representation, no framework dependencies.

Roles, statuses and commission types are closed enums; behaviour that differs
by role or status is driven by data (lookup tables below), not subclassing.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional

from salon_engine.domain.money import ZERO, round_money, to_decimal
from salon_engine.domain.slots import TimeSlot


class StaffRole(str, Enum):
    STYLIST = "stylist"
    RECEPTIONIST = "receptionist"
    MANAGER = "manager"


# Roles that can hold appointments
BOOKABLE_ROLES: FrozenSet[StaffRole] = frozenset({StaffRole.STYLIST, StaffRole.MANAGER})


class CommissionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Statuses whose interval no longer blocks the staff member's calendar
RELEASED_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

# Statuses that still allow date/time/staff changes
RESCHEDULABLE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# Forward-only; a callback repeating the current status is a redelivery
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.COMPLETED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    CHAPA = "chapa"
    TELEBIRR = "telebirr"
    BANK_TRANSFER = "bank_transfer"


class LedgerEntryType(str, Enum):
    SPLIT = "split"
    REVERSAL = "reversal"


@dataclass
class Salon:
    """A tenant. ``commission_rate`` overrides the platform fee when set."""

    id: str
    name: str = ""
    commission_rate: Optional[Decimal] = None
    salon_type: Optional[str] = None  # hair, beauty, spa, barbershop, nails
    size: Optional[str] = None  # solo, small, medium, large
    is_active: bool = True


@dataclass
class Branch:
    id: str
    salon_id: str
    name: str = ""
    is_main_branch: bool = False
    is_active: bool = True


@dataclass
class Staff:
    """A staff member; ``branch_id`` set means the member only works there."""

    id: str
    salon_id: str
    name: str = ""
    role: StaffRole = StaffRole.STYLIST
    commission_percentage: Decimal = Decimal("100")
    branch_id: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        self.role = StaffRole(self.role)
        self.commission_percentage = to_decimal(self.commission_percentage)

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.role in BOOKABLE_ROLES

    def works_at(self, branch_id: str) -> bool:
        return self.branch_id is None or self.branch_id == branch_id


@dataclass
class ServiceCategory:
    id: str
    salon_id: str
    name: str = ""


@dataclass
class Service:
    """A bookable service with exactly one commission rule."""

    id: str
    salon_id: str
    category_id: Optional[str] = None
    name: str = ""
    duration_minutes: int = 30
    price: Decimal = ZERO
    commission_type: CommissionType = CommissionType.PERCENTAGE
    commission_value: Decimal = Decimal("0")
    is_active: bool = True

    def __post_init__(self):
        """Validate business rules."""
        self.price = round_money(self.price)
        self.commission_value = to_decimal(self.commission_value)
        self.commission_type = CommissionType(self.commission_type)
        if self.duration_minutes is None or self.duration_minutes <= 0:
            raise ValueError("Duration must be positive")
        if self.price < 0:
            raise ValueError("Price cannot be negative")


@dataclass
class Appointment:
    """Domain entity for Appointment business logic."""

    id: Optional[str]
    salon_id: str
    branch_id: str
    staff_id: str
    client_id: str
    service_id: str
    appointment_date: date
    start_time: time
    end_time: time
    total_price: Decimal = ZERO
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = AppointmentStatus(self.status)
        self.total_price = round_money(self.total_price)

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(
            self.appointment_date,
            self.start_time,
            self.end_time,
            self.staff_id,
            self.branch_id,
        )

    @property
    def blocks_calendar(self) -> bool:
        return self.status not in RELEASED_STATUSES

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, self.start_time)

    def can_transition_to(self, new_status: AppointmentStatus) -> bool:
        return AppointmentStatus(new_status) in ALLOWED_TRANSITIONS[self.status]


@dataclass
class Payment:
    """Settlement record for one appointment."""

    id: Optional[str]
    appointment_id: str
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    amount_mismatch: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.amount = round_money(self.amount)
        self.payment_method = PaymentMethod(self.payment_method)
        self.status = PaymentStatus(self.status)

    def accepts(self, new_status: PaymentStatus) -> bool:
        """True for a redelivery of the current status or a forward edge."""
        new_status = PaymentStatus(new_status)
        return new_status == self.status or new_status in PAYMENT_TRANSITIONS[self.status]


@dataclass(frozen=True)
class CommissionSplit:
    """Staff/salon/platform division of an appointment's price.

    Reversal entries carry the negated shares of the split they compensate.
    """

    appointment_id: str
    staff_share: Decimal
    salon_share: Decimal
    platform_share: Decimal
    staff_id: Optional[str] = None
    salon_id: Optional[str] = None
    entry_type: LedgerEntryType = LedgerEntryType.SPLIT
    created_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def total(self) -> Decimal:
        return self.staff_share + self.salon_share + self.platform_share

    def reversed(self) -> "CommissionSplit":
        return CommissionSplit(
            appointment_id=self.appointment_id,
            staff_share=-self.staff_share,
            salon_share=-self.salon_share,
            platform_share=-self.platform_share,
            staff_id=self.staff_id,
            salon_id=self.salon_id,
            entry_type=LedgerEntryType.REVERSAL,
        )

    def to_dict(self) -> dict:
        return {
            "appointmentId": self.appointment_id,
            "entryType": self.entry_type.value,
            "staffShare": float(self.staff_share),
            "salonShare": float(self.salon_share),
            "platformShare": float(self.platform_share),
            "total": float(self.total),
        }


@dataclass(frozen=True)
class Rating:
    """A client's rating of a staff member, supplied by an external source."""

    salon_id: str
    staff_id: str
    value: float
    rated_on: date
    client_id: Optional[str] = None
