"""
Domain package - pure business logic layer.

- entities.py: domain entities, enums and the appointment state machine
- slots.py: temporal slot value types
- money.py: decimal money helpers
- interfaces.py: persistence and collaborator contracts
"""

from .entities import (
    ALLOWED_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    Branch,
    CommissionSplit,
    CommissionType,
    LedgerEntryType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Rating,
    Salon,
    Service,
    ServiceCategory,
    Staff,
    StaffRole,
)
from .interfaces import (
    IAppointmentReader,
    IAppointmentRepository,
    IAppointmentWriter,
    ICatalogReader,
    ICommissionLedger,
    IPaymentRepository,
    IRatingSource,
    NoRatings,
)
from .slots import TimeSlot, WorkingHours

__all__ = [
    # Domain entities
    "Salon",
    "Branch",
    "Staff",
    "ServiceCategory",
    "Service",
    "Appointment",
    "Payment",
    "CommissionSplit",
    "Rating",
    # Enums and state machine
    "StaffRole",
    "CommissionType",
    "AppointmentStatus",
    "PaymentStatus",
    "PaymentMethod",
    "LedgerEntryType",
    "ALLOWED_TRANSITIONS",
    # Slots
    "TimeSlot",
    "WorkingHours",
    # Interfaces
    "ICatalogReader",
    "IAppointmentReader",
    "IAppointmentWriter",
    "IAppointmentRepository",
    "IPaymentRepository",
    "ICommissionLedger",
    "IRatingSource",
    "NoRatings",
]
