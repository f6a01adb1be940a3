"""
Booking engine: appointment creation, status transitions and rescheduling.

Every check-and-mutate sequence on a staff member's calendar runs under that
member's lock so the availability check, the index mutation and the
persistence write are one step. Completion listeners run after the lock is
released.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Iterator, List, Optional

from salon_engine.core.config import EngineSettings, now_local
from salon_engine.core.exceptions import (
    IllegalTransition,
    InvalidBookingRequest,
    NotFoundError,
    SlotConflict,
)
from salon_engine.core.locks import StaffLockRegistry
from salon_engine.domain.entities import (
    RELEASED_STATUSES,
    RESCHEDULABLE_STATUSES,
    Appointment,
    AppointmentStatus,
    Branch,
    Salon,
    Service,
    Staff,
)
from salon_engine.domain.interfaces import IAppointmentRepository, ICatalogReader
from salon_engine.domain.slots import TimeSlot, WorkingHours
from salon_engine.schemas.dtos import BookingRequest, RescheduleRequest
from salon_engine.services.availability_index import AvailabilityIndex

logger = logging.getLogger(__name__)

CompletionListener = Callable[[str], object]


class BookingService:
    """Application service for the appointment lifecycle.

    Business Rules:
    - Service, branch and staff must belong to the booking's salon
    - Branch-scoped staff can only be booked at their branch
    - Only active stylists and managers hold appointments
    - No two calendar-blocking appointments of one staff member overlap
    """

    def __init__(
        self,
        catalog: ICatalogReader,
        appointments: IAppointmentRepository,
        index: AvailabilityIndex,
        locks: StaffLockRegistry,
        settings: Optional[EngineSettings] = None,
        clock: Callable[[], datetime] = now_local,
        completion_listeners: Optional[Iterable[CompletionListener]] = None,
    ):
        self.catalog = catalog
        self.appointments = appointments
        self.index = index
        self.locks = locks
        self.settings = settings or EngineSettings()
        self.clock = clock
        self.completion_listeners: List[CompletionListener] = list(
            completion_listeners or []
        )

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self.completion_listeners.append(listener)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book(self, request: BookingRequest) -> Appointment:
        """Create a pending appointment in a free slot.

        Raises:
            InvalidBookingRequest: malformed request or ownership mismatch.
            NotFoundError: salon, branch, staff or service does not exist.
            SlotConflict: the slot overlaps an existing appointment.
        """
        request.validate()

        salon = self._get_salon(request.salon_id)
        branch = self._get_branch(request.branch_id)
        staff = self._get_staff(request.staff_id)
        service = self._get_service(request.service_id)

        self._check_branch(salon, branch)
        self._check_staff(salon, branch, staff)
        self._check_service(salon, service)

        slot = self._build_slot(
            request.appointment_date,
            request.start_time,
            request.end_time,
            service.duration_minutes,
            staff.id,
            branch.id,
        )

        with self.locks.hold(staff.id):
            self._hydrate(staff.id, slot.date)
            conflict = self.index.find_conflict(slot)
            if conflict is not None:
                logger.info(
                    "Booking rejected: slot conflict",
                    extra={
                        "context": {
                            "staff_id": staff.id,
                            "slot": slot.to_dict(),
                            "conflicting_appointment_id": conflict.appointment_id,
                        }
                    },
                )
                raise SlotConflict(conflict.appointment_id, slot)

            now = self.clock()
            appointment = Appointment(
                id=str(uuid.uuid4()),
                salon_id=salon.id,
                branch_id=branch.id,
                staff_id=staff.id,
                client_id=request.client_id,
                service_id=service.id,
                appointment_date=slot.date,
                start_time=slot.start,
                end_time=slot.end,
                total_price=service.price,
                status=AppointmentStatus.PENDING,
                notes=request.notes,
                created_at=now,
                updated_at=now,
            )

            self.index.insert(slot, appointment.id)
            try:
                created = self.appointments.insert(appointment)
            except Exception:
                self.index.remove(appointment.id)
                raise

        logger.info(
            "Appointment booked",
            extra={
                "context": {
                    "appointment_id": created.id,
                    "salon_id": created.salon_id,
                    "staff_id": created.staff_id,
                    "slot": slot.to_dict(),
                }
            },
        )
        return created

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """Move an appointment along the status state machine.

        Raises:
            NotFoundError: unknown appointment.
            IllegalTransition: not an allowed edge, or a no-show before the
                appointment has started.
        """
        new_status = self._parse_status(new_status)

        with self._hold_appointment(appointment_id) as current:
            if not current.can_transition_to(new_status):
                raise IllegalTransition(
                    current.id, current.status.value, new_status.value
                )
            if new_status == AppointmentStatus.NO_SHOW:
                moment = now or self.clock()
                if moment < current.starts_at:
                    raise IllegalTransition(
                        current.id,
                        current.status.value,
                        new_status.value,
                        reason="appointment has not started yet",
                    )

            self._hydrate(current.staff_id, current.appointment_date)
            updated = self.appointments.update_status(current.id, new_status)
            if new_status in RELEASED_STATUSES:
                self.index.remove(current.id)

        logger.info(
            "Appointment status changed",
            extra={
                "context": {
                    "appointment_id": updated.id,
                    "from": current.status.value,
                    "to": new_status.value,
                }
            },
        )

        if new_status == AppointmentStatus.COMPLETED:
            self._notify_completed(updated.id)
        return updated

    def confirm(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CONFIRMED)

    def check_in(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.IN_PROGRESS)

    def complete(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.COMPLETED)

    def cancel(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CANCELLED)

    def mark_no_show(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.NO_SHOW)

    def mark_overdue_no_shows(self, now: Optional[datetime] = None) -> List[str]:
        """Flag confirmed appointments whose start plus grace period has passed.

        Returns the ids of the appointments moved to no_show.
        """
        now = now or self.clock()
        grace = timedelta(minutes=self.settings.no_show_grace_minutes)
        cutoff = now - grace

        marked: List[str] = []
        for appointment in self.appointments.list_by_status(
            AppointmentStatus.CONFIRMED, until=cutoff.date()
        ):
            if appointment.starts_at > cutoff:
                continue
            try:
                self.transition(appointment.id, AppointmentStatus.NO_SHOW, now=now)
            except IllegalTransition as e:
                # Changed status since it was listed
                logger.info(
                    "Skipping no-show candidate",
                    extra={"context": {"appointment_id": appointment.id, **e.context}},
                )
                continue
            marked.append(appointment.id)

        if marked:
            logger.info(
                "Overdue appointments marked as no-show",
                extra={"context": {"count": len(marked), "appointment_ids": marked}},
            )
        return marked

    # ------------------------------------------------------------------
    # Rescheduling
    # ------------------------------------------------------------------

    def reschedule(self, appointment_id: str, request: RescheduleRequest) -> Appointment:
        """Move an appointment to another date, time and/or staff member.

        The price snapshot is kept. On any failure the index is restored.
        """
        request.validate()
        if request.staff_id:
            # Reject unknown targets before a lock is created for them
            self._get_staff(request.staff_id)

        with self._hold_appointment(appointment_id, request.staff_id) as current:
            salon = self._get_salon(current.salon_id)
            branch = self._get_branch(request.branch_id or current.branch_id)
            self._check_branch(salon, branch)

            staff = self._get_staff(request.staff_id or current.staff_id)
            self._check_staff(salon, branch, staff)

            if current.status not in RESCHEDULABLE_STATUSES:
                raise IllegalTransition(
                    current.id,
                    current.status.value,
                    "rescheduled",
                    reason="only pending or confirmed appointments can be rescheduled",
                )

            new_slot = self._build_slot(
                request.appointment_date,
                request.start_time,
                request.end_time,
                current.slot.duration_minutes,
                staff.id,
                branch.id,
            )

            self._hydrate(current.staff_id, current.appointment_date)
            self._hydrate(staff.id, new_slot.date)

            old_slot = self.index.remove(current.id)
            conflict = self.index.find_conflict(new_slot)
            if conflict is not None:
                if old_slot is not None:
                    self.index.insert(old_slot, current.id)
                raise SlotConflict(conflict.appointment_id, new_slot)

            self.index.insert(new_slot, current.id)
            moved = replace(
                current,
                staff_id=staff.id,
                branch_id=branch.id,
                appointment_date=new_slot.date,
                start_time=new_slot.start,
                end_time=new_slot.end,
                updated_at=self.clock(),
            )
            try:
                updated = self.appointments.update_schedule(moved)
            except Exception:
                self.index.remove(current.id)
                if old_slot is not None:
                    self.index.insert(old_slot, current.id)
                raise

        logger.info(
            "Appointment rescheduled",
            extra={
                "context": {
                    "appointment_id": updated.id,
                    "from": current.slot.to_dict(),
                    "to": new_slot.to_dict(),
                }
            },
        )
        return updated

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def next_free(
        self,
        staff_id: str,
        on: date,
        duration_minutes: Optional[int] = None,
        service_id: Optional[str] = None,
        working_hours: Optional[WorkingHours] = None,
        not_before: Optional[time] = None,
    ) -> TimeSlot:
        """Earliest free slot for a staff member on a date.

        The width comes from ``duration_minutes`` or, when omitted, from the
        service's duration.
        """
        staff = self._get_staff(staff_id)
        if not staff.is_bookable:
            raise InvalidBookingRequest(
                "Staff member cannot take appointments",
                {"staff_id": staff.id, "role": staff.role.value},
            )

        if duration_minutes is None:
            if not service_id:
                raise InvalidBookingRequest(
                    "duration_minutes or service_id is required",
                    {"field": "duration_minutes"},
                )
            duration_minutes = self._get_service(service_id).duration_minutes

        hours = working_hours or WorkingHours(
            self.settings.working_hours_open, self.settings.working_hours_close
        )

        with self.locks.hold(staff.id):
            self._hydrate(staff.id, on)
            return self.index.next_free(
                staff.id,
                on,
                duration_minutes,
                hours,
                branch_id=staff.branch_id,
                not_before=not_before,
            )

    def get_appointment(self, appointment_id: str) -> Appointment:
        return self._get_appointment(appointment_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _hold_appointment(
        self, appointment_id: str, other_staff_id: Optional[str] = None
    ) -> Iterator[Appointment]:
        """Hold the lock of the appointment's current staff member.

        The staff id is only trustworthy once read under its own lock: a
        concurrent reschedule may move the appointment between the unlocked
        read and the acquire, in which case the locks are released and taken
        again for the new owner. Yields the appointment as re-read under the
        lock.
        """
        expected = self._get_appointment(appointment_id)
        while True:
            keys = [expected.staff_id]
            if other_staff_id:
                keys.append(other_staff_id)
            with self.locks.hold(*keys):
                current = self._get_appointment(appointment_id)
                if current.staff_id == expected.staff_id:
                    yield current
                    return
            logger.debug(
                "Appointment moved before its lock was taken, retrying",
                extra={
                    "context": {
                        "appointment_id": appointment_id,
                        "locked_staff_id": expected.staff_id,
                        "current_staff_id": current.staff_id,
                    }
                },
            )
            expected = current

    def _hydrate(self, staff_id: str, on: date) -> None:
        """Load a (staff, date) bucket from persistence on first use."""
        if self.index.is_loaded(staff_id, on):
            return
        existing = self.appointments.list_by_staff_and_date_range(staff_id, on, on)
        self.index.load(
            staff_id,
            on,
            [(a.slot, a.id) for a in existing if a.blocks_calendar],
        )

    def _notify_completed(self, appointment_id: str) -> None:
        for listener in self.completion_listeners:
            try:
                listener(appointment_id)
            except Exception as e:
                # The completion is already persisted; the listener can be retried
                logger.error(
                    f"Completion listener failed: {str(e)}",
                    extra={"context": {"appointment_id": appointment_id}},
                    exc_info=True,
                )

    @staticmethod
    def _build_slot(
        on: date,
        start: time,
        end: Optional[time],
        duration_minutes: int,
        staff_id: str,
        branch_id: str,
    ) -> TimeSlot:
        if end is not None:
            return TimeSlot(on, start, end, staff_id, branch_id)
        return TimeSlot.from_duration(on, start, duration_minutes, staff_id, branch_id)

    @staticmethod
    def _parse_status(value) -> AppointmentStatus:
        try:
            return AppointmentStatus(value)
        except ValueError:
            raise InvalidBookingRequest(
                f"Unknown appointment status: {value}", {"field": "status"}
            )

    @staticmethod
    def _check_branch(salon: Salon, branch: Branch) -> None:
        if branch.salon_id != salon.id:
            raise InvalidBookingRequest(
                "Branch does not belong to the salon",
                {"salon_id": salon.id, "branch_id": branch.id},
            )
        if not salon.is_active or not branch.is_active:
            raise InvalidBookingRequest(
                "Salon or branch is inactive",
                {"salon_id": salon.id, "branch_id": branch.id},
            )

    @staticmethod
    def _check_staff(salon: Salon, branch: Branch, staff: Staff) -> None:
        if staff.salon_id != salon.id:
            raise InvalidBookingRequest(
                "Staff member does not belong to the salon",
                {"salon_id": salon.id, "staff_id": staff.id},
            )
        if not staff.works_at(branch.id):
            raise InvalidBookingRequest(
                "Staff member does not work at this branch",
                {"staff_id": staff.id, "branch_id": branch.id},
            )
        if not staff.is_bookable:
            raise InvalidBookingRequest(
                "Staff member cannot take appointments",
                {"staff_id": staff.id, "role": staff.role.value},
            )

    @staticmethod
    def _check_service(salon: Salon, service: Service) -> None:
        if service.salon_id != salon.id:
            raise InvalidBookingRequest(
                "Service does not belong to the salon",
                {"salon_id": salon.id, "service_id": service.id},
            )
        if not service.is_active:
            raise InvalidBookingRequest(
                "Service is inactive", {"service_id": service.id}
            )

    def _get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def _get_salon(self, salon_id: str) -> Salon:
        salon = self.catalog.get_salon(salon_id)
        if salon is None:
            raise NotFoundError("Salon", salon_id)
        return salon

    def _get_branch(self, branch_id: str) -> Branch:
        branch = self.catalog.get_branch(branch_id)
        if branch is None:
            raise NotFoundError("Branch", branch_id)
        return branch

    def _get_staff(self, staff_id: str) -> Staff:
        staff = self.catalog.get_staff(staff_id)
        if staff is None:
            raise NotFoundError("Staff", staff_id)
        return staff

    def _get_service(self, service_id: str) -> Service:
        service = self.catalog.get_service(service_id)
        if service is None:
            raise NotFoundError("Service", service_id)
        return service
