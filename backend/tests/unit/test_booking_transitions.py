"""
Unit tests for appointment status transitions and the no-show sweep.
"""

from datetime import date, datetime, time
from unittest.mock import Mock

import pytest

from salon_engine.core.exceptions import (
    IllegalTransition,
    InvalidBookingRequest,
    NotFoundError,
)
from salon_engine.domain.entities import ALLOWED_TRANSITIONS, AppointmentStatus
from salon_engine.schemas.dtos import BookingRequest
from salon_engine.services.booking_service import BookingService

DAY = date(2025, 3, 10)


def book(service: BookingService, start: str = "10:00", staff_id: str = "stylist-1"):
    return service.book(
        BookingRequest(
            salon_id="salon-1",
            branch_id="branch-1",
            staff_id=staff_id,
            client_id="client-1",
            service_id="haircut",
            appointment_date=DAY,
            start_time=time.fromisoformat(start),
        )
    )


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestStateMachine:
    def test_happy_path(self, booking_service):
        appointment = book(booking_service)
        assert booking_service.confirm(appointment.id).status == AppointmentStatus.CONFIRMED
        assert booking_service.check_in(appointment.id).status == AppointmentStatus.IN_PROGRESS
        assert booking_service.complete(appointment.id).status == AppointmentStatus.COMPLETED

    def test_pending_to_completed_is_illegal(self, booking_service, store):
        appointment = book(booking_service)

        with pytest.raises(IllegalTransition) as exc_info:
            booking_service.transition(appointment.id, AppointmentStatus.COMPLETED)

        assert exc_info.value.current == "pending"
        assert exc_info.value.requested == "completed"
        assert store.appointments.get_by_id(appointment.id).status == AppointmentStatus.PENDING

    @pytest.mark.parametrize(
        "terminal", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED]
    )
    def test_terminal_statuses_have_no_exit(self, terminal):
        assert ALLOWED_TRANSITIONS[terminal] == frozenset()

    def test_cancelled_is_terminal(self, booking_service):
        appointment = book(booking_service)
        booking_service.cancel(appointment.id)
        with pytest.raises(IllegalTransition):
            booking_service.confirm(appointment.id)

    def test_status_accepts_string_values(self, booking_service):
        appointment = book(booking_service)
        updated = booking_service.transition(appointment.id, "confirmed")
        assert updated.status == AppointmentStatus.CONFIRMED

    def test_unknown_status_rejected(self, booking_service):
        appointment = book(booking_service)
        with pytest.raises(InvalidBookingRequest):
            booking_service.transition(appointment.id, "teleported")

    def test_unknown_appointment(self, booking_service):
        with pytest.raises(NotFoundError):
            booking_service.confirm("missing")


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestCalendarRelease:
    def test_cancel_frees_the_slot(self, booking_service, index):
        appointment = book(booking_service)
        booking_service.cancel(appointment.id)

        assert not index.contains(appointment.id)
        assert book(booking_service).start_time == time(10, 0)

    def test_completed_keeps_blocking(self, booking_service, index):
        appointment = book(booking_service)
        booking_service.confirm(appointment.id)
        booking_service.check_in(appointment.id)
        booking_service.complete(appointment.id)
        assert index.contains(appointment.id)

    def test_no_show_before_start_is_illegal(self, booking_service, clock):
        appointment = book(booking_service)
        booking_service.confirm(appointment.id)
        clock.set(9, 59)

        with pytest.raises(IllegalTransition):
            booking_service.mark_no_show(appointment.id)

    def test_no_show_after_start_frees_slot(self, booking_service, clock, index):
        appointment = book(booking_service)
        booking_service.confirm(appointment.id)
        clock.set(10, 5)

        updated = booking_service.mark_no_show(appointment.id)

        assert updated.status == AppointmentStatus.NO_SHOW
        assert not index.contains(appointment.id)

    def test_no_show_only_from_confirmed(self, booking_service, clock):
        appointment = book(booking_service)
        clock.set(11, 0)
        with pytest.raises(IllegalTransition):
            booking_service.mark_no_show(appointment.id)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestNoShowSweep:
    def test_marks_only_confirmed_past_grace(self, booking_service, clock):
        overdue = book(booking_service, "09:00")
        within_grace = book(booking_service, "10:00")
        pending = book(booking_service, "08:00")
        for appointment in (overdue, within_grace):
            booking_service.confirm(appointment.id)

        marked = booking_service.mark_overdue_no_shows(now=datetime(2025, 3, 10, 10, 10))

        assert marked == [overdue.id]
        assert booking_service.get_appointment(pending.id).status == AppointmentStatus.PENDING
        assert (
            booking_service.get_appointment(within_grace.id).status
            == AppointmentStatus.CONFIRMED
        )

    def test_uses_clock_when_now_omitted(self, booking_service, clock):
        appointment = book(booking_service, "09:00")
        booking_service.confirm(appointment.id)
        clock.set(9, 20)

        assert booking_service.mark_overdue_no_shows() == [appointment.id]

    def test_previous_days_are_swept(self, booking_service, clock):
        appointment = book(booking_service, "17:00")
        booking_service.confirm(appointment.id)
        clock.now = datetime(2025, 3, 11, 8, 0)

        assert booking_service.mark_overdue_no_shows() == [appointment.id]


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestCompletionListeners:
    def test_listener_called_after_completion(self, store, index, locks, settings, clock):
        listener = Mock()
        service = BookingService(
            store.catalog,
            store.appointments,
            index,
            locks,
            settings=settings,
            clock=clock,
            completion_listeners=[listener],
        )
        appointment = book(service)
        service.confirm(appointment.id)
        service.check_in(appointment.id)
        listener.assert_not_called()

        service.complete(appointment.id)

        listener.assert_called_once_with(appointment.id)

    def test_listener_runs_outside_staff_lock(self, store, index, locks, settings, clock):
        observed = []

        def listener(appointment_id):
            lock = locks.lock_for("stylist-1")
            acquired = lock.acquire(blocking=False)
            observed.append(acquired)
            if acquired:
                lock.release()

        service = BookingService(
            store.catalog,
            store.appointments,
            index,
            locks,
            settings=settings,
            clock=clock,
            completion_listeners=[listener],
        )
        appointment = book(service)
        service.confirm(appointment.id)
        service.check_in(appointment.id)
        service.complete(appointment.id)

        assert observed == [True]

    def test_listener_failure_does_not_fail_completion(
        self, store, index, locks, settings, clock
    ):
        listener = Mock(side_effect=RuntimeError("boom"))
        service = BookingService(
            store.catalog,
            store.appointments,
            index,
            locks,
            settings=settings,
            clock=clock,
            completion_listeners=[listener],
        )
        appointment = book(service)
        service.confirm(appointment.id)
        service.check_in(appointment.id)

        completed = service.complete(appointment.id)

        assert completed.status == AppointmentStatus.COMPLETED
        listener.assert_called_once_with(appointment.id)
