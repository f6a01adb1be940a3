"""
In-memory implementations of the persistence interfaces.

They store copies of the domain objects so services cannot mutate stored
state by reference, and guard every operation with a lock so they can back
multi-threaded tests.
"""

import threading
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from salon_engine.core.exceptions import NotFoundError, PersistenceError
from salon_engine.domain.entities import (
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
    Staff,
    StaffRole,
)
from salon_engine.domain.interfaces import (
    IAppointmentRepository,
    ICatalogReader,
    ICommissionLedger,
    IPaymentRepository,
    IRatingSource,
)


class InMemoryCatalog(ICatalogReader):
    def __init__(self):
        self.salons: Dict[str, Salon] = {}
        self.branches: Dict[str, Branch] = {}
        self.staff: Dict[str, Staff] = {}
        self.services: Dict[str, Service] = {}

    def add(self, *entities) -> None:
        for entity in entities:
            if isinstance(entity, Salon):
                self.salons[entity.id] = entity
            elif isinstance(entity, Branch):
                self.branches[entity.id] = entity
            elif isinstance(entity, Staff):
                self.staff[entity.id] = entity
            elif isinstance(entity, Service):
                self.services[entity.id] = entity
            else:
                raise TypeError(f"Unsupported catalog entity: {entity!r}")

    def get_salon(self, salon_id: str) -> Optional[Salon]:
        return self.salons.get(salon_id)

    def get_branch(self, branch_id: str) -> Optional[Branch]:
        return self.branches.get(branch_id)

    def get_staff(self, staff_id: str) -> Optional[Staff]:
        return self.staff.get(staff_id)

    def get_service(self, service_id: str) -> Optional[Service]:
        return self.services.get(service_id)


class InMemoryAppointmentRepository(IAppointmentRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self.rows: Dict[str, Appointment] = {}
        # Set to an exception instance to make the next write fail
        self.fail_next_write: Optional[Exception] = None

    def _maybe_fail(self) -> None:
        if self.fail_next_write is not None:
            error, self.fail_next_write = self.fail_next_write, None
            raise error

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            row = self.rows.get(appointment_id)
            return replace(row) if row else None

    def list_by_staff_and_date_range(
        self, staff_id: str, start_date: date, end_date: date
    ) -> List[Appointment]:
        with self._lock:
            return sorted(
                (
                    replace(a)
                    for a in self.rows.values()
                    if a.staff_id == staff_id
                    and start_date <= a.appointment_date <= end_date
                ),
                key=lambda a: (a.appointment_date, a.start_time),
            )

    def list_by_salon_and_date_range(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
        branch_id: Optional[str] = None,
    ) -> List[Appointment]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            return sorted(
                (
                    replace(a)
                    for a in self.rows.values()
                    if a.salon_id == salon_id
                    and start_date <= a.appointment_date <= end_date
                    and (wanted is None or a.status in wanted)
                    and (branch_id is None or a.branch_id == branch_id)
                ),
                key=lambda a: (a.appointment_date, a.start_time),
            )

    def list_by_status(
        self, status: AppointmentStatus, until: Optional[date] = None
    ) -> List[Appointment]:
        with self._lock:
            return sorted(
                (
                    replace(a)
                    for a in self.rows.values()
                    if a.status == status
                    and (until is None or a.appointment_date <= until)
                ),
                key=lambda a: (a.appointment_date, a.start_time),
            )

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._maybe_fail()
            if appointment.id in self.rows:
                raise PersistenceError("Duplicate appointment id")
            self.rows[appointment.id] = replace(appointment)
            return replace(appointment)

    def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        with self._lock:
            self._maybe_fail()
            row = self.rows.get(appointment_id)
            if row is None:
                raise NotFoundError("Appointment", appointment_id)
            updated = replace(row, status=AppointmentStatus(status))
            self.rows[appointment_id] = updated
            return replace(updated)

    def update_schedule(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._maybe_fail()
            if appointment.id not in self.rows:
                raise NotFoundError("Appointment", appointment.id)
            self.rows[appointment.id] = replace(appointment)
            return replace(appointment)


class InMemoryPaymentRepository(IPaymentRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self.rows: Dict[str, Payment] = {}

    def get_by_id(self, payment_id: str) -> Optional[Payment]:
        with self._lock:
            row = self.rows.get(payment_id)
            return replace(row) if row else None

    def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        with self._lock:
            for row in self.rows.values():
                if row.transaction_id == transaction_id:
                    return replace(row)
            return None

    def get_by_appointment_id(self, appointment_id: str) -> Optional[Payment]:
        with self._lock:
            matches = [p for p in self.rows.values() if p.appointment_id == appointment_id]
            return replace(matches[-1]) if matches else None

    def list_by_appointment_ids(self, appointment_ids: Iterable[str]) -> List[Payment]:
        wanted = set(appointment_ids)
        with self._lock:
            return [replace(p) for p in self.rows.values() if p.appointment_id in wanted]

    def insert(self, payment: Payment) -> Payment:
        with self._lock:
            self.rows[payment.id] = replace(payment)
            return replace(payment)

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
        with self._lock:
            row = self.rows.get(payment_id)
            if row is None:
                raise NotFoundError("Payment", payment_id)
            changes = {"status": PaymentStatus(status)}
            if amount is not None:
                changes["amount"] = amount
            if payment_method is not None:
                changes["payment_method"] = PaymentMethod(payment_method)
            if paid_at is not None:
                changes["paid_at"] = paid_at
            if amount_mismatch is not None:
                changes["amount_mismatch"] = amount_mismatch
            if transaction_id is not None:
                changes["transaction_id"] = transaction_id
            updated = replace(row, **changes)
            self.rows[payment_id] = updated
            return replace(updated)


class InMemoryCommissionLedger(ICommissionLedger):
    def __init__(self):
        self._lock = threading.Lock()
        self.entries: List[CommissionSplit] = []
        self.insert_attempts = 0

    def get_entry(
        self, appointment_id: str, entry_type: LedgerEntryType = LedgerEntryType.SPLIT
    ) -> Optional[CommissionSplit]:
        with self._lock:
            for entry in self.entries:
                if entry.appointment_id == appointment_id and entry.entry_type == entry_type:
                    return entry
            return None

    def insert_once(self, split: CommissionSplit) -> CommissionSplit:
        with self._lock:
            self.insert_attempts += 1
            for entry in self.entries:
                if (
                    entry.appointment_id == split.appointment_id
                    and entry.entry_type == split.entry_type
                ):
                    return entry
            self.entries.append(split)
            return split

    def list_by_appointment(self, appointment_id: str) -> List[CommissionSplit]:
        with self._lock:
            return [e for e in self.entries if e.appointment_id == appointment_id]


class InMemoryRatingSource(IRatingSource):
    def __init__(self, ratings: Optional[List[Rating]] = None):
        self.ratings: List[Rating] = list(ratings or [])

    def ratings_for(self, salon_id: str, start_date: date, end_date: date) -> List[Rating]:
        return [
            r
            for r in self.ratings
            if r.salon_id == salon_id and start_date <= r.rated_on <= end_date
        ]


class InMemoryStore:
    """Bundle of in-memory repositories sharing one test's state."""

    def __init__(self):
        self.catalog = InMemoryCatalog()
        self.appointments = InMemoryAppointmentRepository()
        self.payments = InMemoryPaymentRepository()
        self.ledger = InMemoryCommissionLedger()
        self.ratings = InMemoryRatingSource()


def seed_catalog(store: InMemoryStore) -> None:
    """Default catalog used across the unit tests.

    salon-1 has two branches; stylist-1 works anywhere, stylist-2 only at
    branch-2. salon-2 exists to exercise ownership checks.
    """
    store.catalog.add(
        Salon(id="salon-1", name="Glow Studio"),
        Salon(id="salon-2", name="Other Salon"),
        Branch(id="branch-1", salon_id="salon-1", name="Main", is_main_branch=True),
        Branch(id="branch-2", salon_id="salon-1", name="Bole"),
        Branch(id="branch-x", salon_id="salon-2", name="Elsewhere"),
        Staff(id="stylist-1", salon_id="salon-1", name="Abebe"),
        Staff(id="stylist-2", salon_id="salon-1", name="Sara", branch_id="branch-2"),
        Staff(id="manager-1", salon_id="salon-1", name="Hana", role=StaffRole.MANAGER),
        Staff(
            id="receptionist-1",
            salon_id="salon-1",
            name="Lily",
            role=StaffRole.RECEPTIONIST,
        ),
        Staff(id="inactive-1", salon_id="salon-1", name="Gone", is_active=False),
        Staff(id="foreign-staff", salon_id="salon-2", name="Elsa"),
        Service(
            id="haircut",
            salon_id="salon-1",
            name="Haircut",
            duration_minutes=30,
            price=Decimal("100.00"),
            commission_type=CommissionType.PERCENTAGE,
            commission_value=Decimal("40"),
        ),
        Service(
            id="color",
            salon_id="salon-1",
            name="Hair Color",
            duration_minutes=90,
            price=Decimal("250.00"),
            commission_type=CommissionType.FIXED,
            commission_value=Decimal("30"),
        ),
        Service(
            id="retired",
            salon_id="salon-1",
            name="Old Service",
            price=Decimal("10.00"),
            is_active=False,
        ),
        Service(
            id="foreign-service",
            salon_id="salon-2",
            name="Manicure",
            price=Decimal("50.00"),
        ),
    )
