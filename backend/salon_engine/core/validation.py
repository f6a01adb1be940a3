"""
Request payload validation for the HTTP controllers.

Validators collect every field error in a ``ValidationResult``; ``to_dto``
helpers turn a valid result into a request DTO or raise
``InvalidBookingRequest`` listing the errors.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from salon_engine.core.exceptions import InvalidBookingRequest
from salon_engine.domain.entities import PaymentMethod, PaymentStatus
from salon_engine.schemas.dtos import (
    BookingRequest,
    RescheduleRequest,
    SettlementCallback,
)

logger = logging.getLogger(__name__)


class ValidationResult:
    """Container for validation results."""

    def __init__(self):
        self.errors: List[str] = []
        self.is_valid: bool = True
        self.cleaned_data: Dict[str, Any] = {}

    def add_error(self, message: str, field: Optional[str] = None):
        """Add validation error."""
        error_msg = f"{field}: {message}" if field else message
        self.errors.append(error_msg)
        self.is_valid = False
        logger.warning(f"Validation error: {error_msg}")

    def raise_if_invalid(self) -> None:
        if not self.is_valid:
            raise InvalidBookingRequest(
                "Invalid request payload", {"errors": list(self.errors)}
            )


class BaseValidator:
    """Base validator with common validation methods."""

    def validate(
        self, data: Dict[str, Any]
    ) -> ValidationResult:  # pragma: no cover - interface definition
        """Validate data for a specific request type."""
        raise NotImplementedError("Subclasses must implement validate")

    @staticmethod
    def validate_required_field(
        value: Any, field_name: str, result: ValidationResult
    ) -> bool:
        """Validate that a required field is present and not empty."""
        if value is None or (isinstance(value, str) and value.strip() == ""):
            result.add_error("is required", field_name)
            return False
        return True

    @staticmethod
    def validate_date(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[date]:
        """Validate and convert date field."""
        if value is None or value == "":
            return None

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        if isinstance(value, str):
            try:
                return datetime.strptime(value, "%Y-%m-%d").date()
            except ValueError:
                result.add_error("Invalid date. Use format YYYY-MM-DD", field_name)
                return None

        result.add_error("Invalid date format", field_name)
        return None

    @staticmethod
    def validate_time(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[time]:
        """Validate and convert an HH:MM (or HH:MM:SS) time field."""
        if value is None or value == "":
            return None

        if isinstance(value, time):
            return value

        if isinstance(value, str):
            try:
                return time.fromisoformat(value.strip())
            except ValueError:
                result.add_error("Invalid time. Use format HH:MM", field_name)
                return None

        result.add_error("Invalid time format", field_name)
        return None

    @staticmethod
    def validate_datetime(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[datetime]:
        if value is None or value == "":
            return None

        if isinstance(value, datetime):
            return value

        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError:
                result.add_error("Invalid datetime. Use ISO 8601", field_name)
                return None

        result.add_error("Invalid datetime format", field_name)
        return None

    @staticmethod
    def validate_decimal(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[Decimal] = None,
        max_value: Optional[Decimal] = None,
    ) -> Optional[Decimal]:
        """Validate and convert decimal field."""
        if value is None or value == "":
            return None

        if isinstance(value, bool):
            result.add_error("Invalid value. Use a number", field_name)
            return None

        if isinstance(value, Decimal):
            decimal_value = value
        else:
            try:
                if isinstance(value, str):
                    value = value.strip().replace(" ", "")
                decimal_value = Decimal(str(value))
            except (InvalidOperation, TypeError, ValueError):
                result.add_error("Invalid value. Use a number", field_name)
                return None

        if not decimal_value.is_finite():
            result.add_error("Invalid value. Use a number", field_name)
            return None

        # Range validation
        if min_value is not None and decimal_value < min_value:
            result.add_error(f"Value must be at least {min_value}", field_name)
            return None

        if max_value is not None and decimal_value > max_value:
            result.add_error(f"Value must be at most {max_value}", field_name)
            return None

        return decimal_value

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> Optional[int]:
        """Validate and convert integer field."""
        if value is None or value == "":
            return None

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            result.add_error("Value must be an integer", field_name)
            return None

        if min_value is not None and int_value < min_value:
            result.add_error(f"Value must be at least {min_value}", field_name)
            return None

        if max_value is not None and int_value > max_value:
            result.add_error(f"Value must be at most {max_value}", field_name)
            return None

        return int_value

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        result: ValidationResult,
        max_length: Optional[int] = None,
        allowed_values: Optional[List[str]] = None,
    ) -> Optional[str]:
        """Validate string field."""
        if value is None:
            return None

        if not isinstance(value, str):
            value = str(value)

        value = value.strip()

        if max_length is not None and len(value) > max_length:
            result.add_error(f"Must be at most {max_length} characters", field_name)
            return None

        if allowed_values is not None and value not in allowed_values:
            result.add_error(
                f"Value must be one of: {', '.join(allowed_values)}", field_name
            )
            return None

        return value if value else None


class BookingValidator(BaseValidator):
    ID_FIELDS = ("salon_id", "branch_id", "staff_id", "client_id", "service_id")

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for name in self.ID_FIELDS:
            if self.validate_required_field(data.get(name), name, result):
                result.cleaned_data[name] = self.validate_string(
                    data.get(name), name, result, max_length=36
                )

        if self.validate_required_field(
            data.get("appointment_date"), "appointment_date", result
        ):
            result.cleaned_data["appointment_date"] = self.validate_date(
                data.get("appointment_date"), "appointment_date", result
            )
        if self.validate_required_field(data.get("start_time"), "start_time", result):
            result.cleaned_data["start_time"] = self.validate_time(
                data.get("start_time"), "start_time", result
            )
        result.cleaned_data["end_time"] = self.validate_time(
            data.get("end_time"), "end_time", result
        )
        result.cleaned_data["notes"] = self.validate_string(
            data.get("notes"), "notes", result, max_length=1000
        )
        return result

    def to_dto(self, data: Dict[str, Any]) -> BookingRequest:
        result = self.validate(data)
        result.raise_if_invalid()
        return BookingRequest(**result.cleaned_data)


class RescheduleValidator(BaseValidator):
    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        if self.validate_required_field(
            data.get("appointment_date"), "appointment_date", result
        ):
            result.cleaned_data["appointment_date"] = self.validate_date(
                data.get("appointment_date"), "appointment_date", result
            )
        if self.validate_required_field(data.get("start_time"), "start_time", result):
            result.cleaned_data["start_time"] = self.validate_time(
                data.get("start_time"), "start_time", result
            )
        result.cleaned_data["end_time"] = self.validate_time(
            data.get("end_time"), "end_time", result
        )
        result.cleaned_data["staff_id"] = self.validate_string(
            data.get("staff_id"), "staff_id", result, max_length=36
        )
        result.cleaned_data["branch_id"] = self.validate_string(
            data.get("branch_id"), "branch_id", result, max_length=36
        )
        return result

    def to_dto(self, data: Dict[str, Any]) -> RescheduleRequest:
        result = self.validate(data)
        result.raise_if_invalid()
        return RescheduleRequest(**result.cleaned_data)


class SettlementValidator(BaseValidator):
    METHODS = [m.value for m in PaymentMethod]
    STATUSES = [s.value for s in PaymentStatus]

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        if self.validate_required_field(
            data.get("appointment_id"), "appointment_id", result
        ):
            result.cleaned_data["appointment_id"] = self.validate_string(
                data.get("appointment_id"), "appointment_id", result, max_length=36
            )
        if self.validate_required_field(data.get("amount"), "amount", result):
            result.cleaned_data["amount"] = self.validate_decimal(
                data.get("amount"), "amount", result, min_value=Decimal("0")
            )
        if self.validate_required_field(
            data.get("payment_method"), "payment_method", result
        ):
            result.cleaned_data["payment_method"] = self.validate_string(
                data.get("payment_method"),
                "payment_method",
                result,
                allowed_values=self.METHODS,
            )
        if self.validate_required_field(data.get("status"), "status", result):
            result.cleaned_data["status"] = self.validate_string(
                data.get("status"), "status", result, allowed_values=self.STATUSES
            )
        result.cleaned_data["transaction_id"] = self.validate_string(
            data.get("transaction_id"), "transaction_id", result, max_length=100
        )
        result.cleaned_data["paid_at"] = self.validate_datetime(
            data.get("paid_at"), "paid_at", result
        )
        return result

    def to_dto(self, data: Dict[str, Any]) -> SettlementCallback:
        result = self.validate(data)
        result.raise_if_invalid()
        return SettlementCallback(**result.cleaned_data)
