"""
Reports controller for the salon analytics dashboard.

Provides endpoints for:
- Dashboard stat cards with change against the prior window
- Revenue series for charts
- Service and staff performance tables

Every endpoint takes ``salon_id``, ``start`` and ``end`` (YYYY-MM-DD,
inclusive) and an optional ``branch_id``.
"""

import logging
from typing import Optional, Tuple

from flask import Blueprint, request

from salon_engine.core.api_utils import api_response, error_response
from salon_engine.core.exceptions import SalonEngineError
from salon_engine.core.validation import BaseValidator, ValidationResult
from salon_engine.schemas.dtos import DateWindow
from salon_engine.services.analytics_service import GRANULARITIES, format_change
from salon_engine.services.factory import session_services

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _scope() -> Tuple[str, DateWindow, Optional[str]]:
    args = request.args
    result = ValidationResult()
    salon_id = args.get("salon_id")
    BaseValidator.validate_required_field(salon_id, "salon_id", result)
    start = end = None
    if BaseValidator.validate_required_field(args.get("start"), "start", result):
        start = BaseValidator.validate_date(args.get("start"), "start", result)
    if BaseValidator.validate_required_field(args.get("end"), "end", result):
        end = BaseValidator.validate_date(args.get("end"), "end", result)
    result.raise_if_invalid()
    return salon_id, DateWindow(start, end), args.get("branch_id") or None


@reports_bp.route("/dashboard", methods=["GET"])
def dashboard():
    try:
        salon_id, window, branch_id = _scope()
        with session_services() as services:
            stats = services.analytics.dashboard_stats(
                salon_id, window, branch_id=branch_id
            )
        data = stats.to_dict()
        data["labels"] = {
            "revenueChange": format_change(stats.revenue_change),
            "appointmentsChange": format_change(stats.appointments_change),
            "clientsChange": format_change(stats.clients_change),
            "ratingChange": format_change(stats.rating_change),
        }
        return api_response(True, "Dashboard stats", data)
    except SalonEngineError as e:
        return error_response(e)


@reports_bp.route("/revenue", methods=["GET"])
def revenue():
    """Optional ``granularity``: day (default), week or month."""
    try:
        salon_id, window, branch_id = _scope()
        result = ValidationResult()
        granularity = BaseValidator.validate_string(
            request.args.get("granularity", "day"),
            "granularity",
            result,
            allowed_values=list(GRANULARITIES),
        )
        result.raise_if_invalid()
        with session_services() as services:
            series = services.analytics.revenue_series(
                salon_id, window, granularity=granularity, branch_id=branch_id
            )
        return api_response(True, "Revenue series", [row.to_dict() for row in series])
    except SalonEngineError as e:
        return error_response(e)


@reports_bp.route("/services", methods=["GET"])
def services_performance():
    try:
        salon_id, window, branch_id = _scope()
        with session_services() as services:
            rows = services.analytics.service_performance(
                salon_id, window, branch_id=branch_id
            )
        return api_response(True, "Service performance", [r.to_dict() for r in rows])
    except SalonEngineError as e:
        return error_response(e)


@reports_bp.route("/staff", methods=["GET"])
def staff_performance():
    try:
        salon_id, window, branch_id = _scope()
        with session_services() as services:
            rows = services.analytics.staff_performance(
                salon_id, window, branch_id=branch_id
            )
        return api_response(True, "Staff performance", [r.to_dict() for r in rows])
    except SalonEngineError as e:
        return error_response(e)
