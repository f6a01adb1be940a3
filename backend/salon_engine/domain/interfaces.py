"""
Abstract interfaces for the persistence boundary.

Services depend on these contracts only; SQLAlchemy implementations live in
``salon_engine.repositories`` and tests supply in-memory ones. Every write is
expected to be atomic for the single entity it touches.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .entities import (
    Appointment,
    AppointmentStatus,
    Branch,
    CommissionSplit,
    LedgerEntryType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Rating,
    Salon,
    Service,
    Staff,
)


class ICatalogReader(ABC):
    """Read access to salons, branches, staff and services."""

    @abstractmethod
    def get_salon(self, salon_id: str) -> Optional[Salon]:
        """Get salon by ID."""
        pass

    @abstractmethod
    def get_branch(self, branch_id: str) -> Optional[Branch]:
        """Get branch by ID."""
        pass

    @abstractmethod
    def get_staff(self, staff_id: str) -> Optional[Staff]:
        """Get staff member by ID."""
        pass

    @abstractmethod
    def get_service(self, service_id: str) -> Optional[Service]:
        """Get service by ID."""
        pass


class IAppointmentReader(ABC):
    """Interface for appointment read operations."""

    @abstractmethod
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        """Get appointment by ID."""
        pass

    @abstractmethod
    def list_by_staff_and_date_range(
        self, staff_id: str, start_date: date, end_date: date
    ) -> List[Appointment]:
        """Appointments of one staff member with start_date <= date <= end_date."""
        pass

    @abstractmethod
    def list_by_salon_and_date_range(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
        branch_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Appointments of a salon (optionally one branch) in an inclusive date range."""
        pass

    @abstractmethod
    def list_by_status(
        self, status: AppointmentStatus, until: Optional[date] = None
    ) -> List[Appointment]:
        """Appointments in ``status``, optionally dated on or before ``until``."""
        pass


class IAppointmentWriter(ABC):
    """Interface for appointment write operations."""

    @abstractmethod
    def insert(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment and return it with its id."""
        pass

    @abstractmethod
    def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        """Set the status of an appointment."""
        pass

    @abstractmethod
    def update_schedule(self, appointment: Appointment) -> Appointment:
        """Persist new date, times, staff and branch of an appointment."""
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    """Complete appointment repository interface."""

    pass


class IPaymentRepository(ABC):
    """Interface for payment persistence."""

    @abstractmethod
    def get_by_id(self, payment_id: str) -> Optional[Payment]:
        pass

    @abstractmethod
    def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        pass

    @abstractmethod
    def get_by_appointment_id(self, appointment_id: str) -> Optional[Payment]:
        """Most recent payment for an appointment."""
        pass

    @abstractmethod
    def list_by_appointment_ids(self, appointment_ids: Iterable[str]) -> List[Payment]:
        pass

    @abstractmethod
    def insert(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    def update_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        amount: Optional[Decimal] = None,
        payment_method: Optional[PaymentMethod] = None,
        paid_at: Optional[datetime] = None,
        amount_mismatch: Optional[bool] = None,
        transaction_id: Optional[str] = None,
    ) -> Payment:
        pass


class ICommissionLedger(ABC):
    """Append-only store of commission splits and their reversals."""

    @abstractmethod
    def get_entry(
        self, appointment_id: str, entry_type: LedgerEntryType = LedgerEntryType.SPLIT
    ) -> Optional[CommissionSplit]:
        pass

    @abstractmethod
    def insert_once(self, split: CommissionSplit) -> CommissionSplit:
        """Insert unless an entry of the same type exists for the appointment.

        Returns the stored entry: the new one, or the one that won the race.
        """
        pass

    @abstractmethod
    def list_by_appointment(self, appointment_id: str) -> List[CommissionSplit]:
        pass


class IRatingSource(ABC):
    """External source of client ratings."""

    @abstractmethod
    def ratings_for(
        self, salon_id: str, start_date: date, end_date: date
    ) -> List[Rating]:
        pass


class NoRatings(IRatingSource):
    """Rating source for deployments without a review system."""

    def ratings_for(self, salon_id: str, start_date: date, end_date: date) -> List[Rating]:
        return []
