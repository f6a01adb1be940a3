"""
Booking controller - appointment lifecycle and availability endpoints.
"""

import logging

from flask import Blueprint, request

from salon_engine.core.api_utils import api_response, error_response
from salon_engine.core.exceptions import InvalidBookingRequest, SalonEngineError
from salon_engine.core.validation import (
    BaseValidator,
    BookingValidator,
    RescheduleValidator,
    ValidationResult,
)
from salon_engine.schemas.dtos import AppointmentResponse
from salon_engine.services.factory import session_services

logger = logging.getLogger(__name__)

booking_bp = Blueprint("booking", __name__, url_prefix="/api")


def _json_payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidBookingRequest("Request body must be a JSON object")
    return data


@booking_bp.route("/appointments", methods=["POST"])
def book_appointment():
    """
    Book an appointment.

    Body: salon_id, branch_id, staff_id, client_id, service_id,
    appointment_date (YYYY-MM-DD), start_time (HH:MM), optional end_time, notes.
    """
    try:
        booking_request = BookingValidator().to_dto(_json_payload())
        with session_services() as services:
            appointment = services.booking.book(booking_request)
        return api_response(
            True,
            "Appointment booked",
            AppointmentResponse.from_domain(appointment).to_dict(),
            201,
        )
    except SalonEngineError as e:
        return error_response(e)
    except Exception as e:
        logger.error(
            "Unexpected error booking appointment",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        return api_response(False, "Internal server error", None, 500)


@booking_bp.route("/appointments/<appointment_id>", methods=["GET"])
def get_appointment(appointment_id: str):
    try:
        with session_services() as services:
            appointment = services.booking.get_appointment(appointment_id)
        return api_response(
            True,
            "Appointment found",
            AppointmentResponse.from_domain(appointment).to_dict(),
        )
    except SalonEngineError as e:
        return error_response(e)


@booking_bp.route("/appointments/<appointment_id>/status", methods=["POST"])
def change_status(appointment_id: str):
    """Body: {"status": "confirmed" | "in_progress" | "completed" | "cancelled" | "no_show"}."""
    try:
        payload = _json_payload()
        status = payload.get("status")
        if not status:
            raise InvalidBookingRequest("status is required", {"field": "status"})
        with session_services() as services:
            appointment = services.booking.transition(appointment_id, status)
        return api_response(
            True,
            f"Appointment moved to {appointment.status.value}",
            AppointmentResponse.from_domain(appointment).to_dict(),
        )
    except SalonEngineError as e:
        return error_response(e)
    except Exception as e:
        logger.error(
            "Unexpected error changing appointment status",
            extra={"context": {"appointment_id": appointment_id, "error": str(e)}},
            exc_info=True,
        )
        return api_response(False, "Internal server error", None, 500)


@booking_bp.route("/appointments/<appointment_id>/reschedule", methods=["POST"])
def reschedule_appointment(appointment_id: str):
    try:
        reschedule_request = RescheduleValidator().to_dto(_json_payload())
        with session_services() as services:
            appointment = services.booking.reschedule(appointment_id, reschedule_request)
        return api_response(
            True,
            "Appointment rescheduled",
            AppointmentResponse.from_domain(appointment).to_dict(),
        )
    except SalonEngineError as e:
        return error_response(e)
    except Exception as e:
        logger.error(
            "Unexpected error rescheduling appointment",
            extra={"context": {"appointment_id": appointment_id, "error": str(e)}},
            exc_info=True,
        )
        return api_response(False, "Internal server error", None, 500)


@booking_bp.route("/availability/next-free", methods=["GET"])
def next_free_slot():
    """
    Earliest free slot of a staff member on a date.

    Query parameters:
    - staff_id, date (YYYY-MM-DD): required
    - duration_minutes or service_id: width of the slot
    - not_before (HH:MM): optional lower bound
    """
    try:
        result = ValidationResult()
        args = request.args
        staff_id = args.get("staff_id")
        BaseValidator.validate_required_field(staff_id, "staff_id", result)
        on = None
        if BaseValidator.validate_required_field(args.get("date"), "date", result):
            on = BaseValidator.validate_date(args.get("date"), "date", result)
        duration = BaseValidator.validate_integer(
            args.get("duration_minutes"), "duration_minutes", result, min_value=1
        )
        not_before = BaseValidator.validate_time(
            args.get("not_before"), "not_before", result
        )
        result.raise_if_invalid()

        with session_services() as services:
            slot = services.booking.next_free(
                staff_id,
                on,
                duration_minutes=duration,
                service_id=args.get("service_id"),
                not_before=not_before,
            )
        return api_response(True, "Free slot found", slot.to_dict())
    except SalonEngineError as e:
        return error_response(e)
