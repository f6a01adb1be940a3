"""
Common API utilities for consistent response formatting across all controllers.
"""

import logging
from typing import Any, Optional

from flask import jsonify

from salon_engine.core.exceptions import (
    IllegalTransition,
    InvalidBookingRequest,
    InvalidCommissionRule,
    InvalidInterval,
    NoAvailability,
    NotFoundError,
    OrphanPayment,
    SalonEngineError,
    SlotConflict,
)

logger = logging.getLogger(__name__)

# Engine error kind -> HTTP status
_STATUS_BY_ERROR = (
    (InvalidInterval, 400),
    (InvalidBookingRequest, 400),
    (InvalidCommissionRule, 400),
    (NotFoundError, 404),
    (OrphanPayment, 404),
    (NoAvailability, 404),
    (SlotConflict, 409),
    (IllegalTransition, 409),
)


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def status_for_error(error: SalonEngineError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def error_response(error: SalonEngineError) -> tuple:
    """Render an engine error as the standard envelope plus ``error``/``context``."""
    status_code = status_for_error(error)
    if status_code >= 500:
        logger.error(
            "Engine error",
            extra={"context": error.to_dict()},
            exc_info=error,
        )
    body = {
        "success": False,
        "message": error.message,
        "error": error.kind,
        "context": error.context,
    }
    return jsonify(body), status_code
