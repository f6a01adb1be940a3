"""
Payments controller - payment gateway settlement callbacks.
"""

import logging

from flask import Blueprint, request

from salon_engine.core.api_utils import api_response, error_response
from salon_engine.core.exceptions import InvalidBookingRequest, SalonEngineError
from salon_engine.core.validation import SettlementValidator
from salon_engine.services.factory import session_services

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/settlement", methods=["POST"])
def settlement_callback():
    """
    Apply a settlement notification.

    Body: appointment_id, amount, payment_method, status, optional
    transaction_id and paid_at (ISO 8601).

    An amount that differs from the appointment price is accepted and
    reported in ``data.warnings``.
    """
    try:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise InvalidBookingRequest("Request body must be a JSON object")
        callback = SettlementValidator().to_dto(payload)

        with session_services() as services:
            result = services.reconciler.reconcile(callback)

        message = "Settlement applied"
        if result.ignored:
            message = "Stale settlement ignored"
        elif result.warnings:
            message = "Settlement applied with warnings"
        return api_response(True, message, result.to_dict())
    except SalonEngineError as e:
        return error_response(e)
    except Exception as e:
        logger.error(
            "Unexpected error applying settlement",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        return api_response(False, "Internal server error", None, 500)
