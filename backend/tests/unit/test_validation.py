"""
Unit tests for request payload validators.
"""

from datetime import date, datetime, time
from decimal import Decimal

import pytest

from salon_engine.core.exceptions import InvalidBookingRequest
from salon_engine.core.validation import (
    BaseValidator,
    BookingValidator,
    RescheduleValidator,
    SettlementValidator,
    ValidationResult,
)
from salon_engine.domain.entities import PaymentMethod, PaymentStatus

VALID_BOOKING = {
    "salon_id": "salon-1",
    "branch_id": "branch-1",
    "staff_id": "stylist-1",
    "client_id": "client-1",
    "service_id": "haircut",
    "appointment_date": "2025-03-10",
    "start_time": "10:00",
}


@pytest.mark.unit
class TestBaseValidator:
    def test_required_field(self):
        result = ValidationResult()
        assert not BaseValidator.validate_required_field("  ", "name", result)
        assert result.errors == ["name: is required"]
        assert not result.is_valid

    def test_date_parsing(self):
        result = ValidationResult()
        assert BaseValidator.validate_date("2025-03-10", "d", result) == date(2025, 3, 10)
        assert BaseValidator.validate_date("10/03/2025", "d", result) is None
        assert len(result.errors) == 1

    def test_time_parsing(self):
        result = ValidationResult()
        assert BaseValidator.validate_time("09:30", "t", result) == time(9, 30)
        assert BaseValidator.validate_time("9h30", "t", result) is None
        assert not result.is_valid

    @pytest.mark.parametrize("raw", ["abc", True, "NaN", "Infinity"])
    def test_decimal_rejects_non_numbers(self, raw):
        result = ValidationResult()
        assert BaseValidator.validate_decimal(raw, "amount", result) is None
        assert not result.is_valid

    def test_decimal_bounds(self):
        result = ValidationResult()
        assert (
            BaseValidator.validate_decimal("-1", "amount", result, min_value=Decimal("0"))
            is None
        )
        assert BaseValidator.validate_decimal("12.50", "amount", ValidationResult()) == Decimal(
            "12.50"
        )

    def test_string_allowed_values(self):
        result = ValidationResult()
        assert (
            BaseValidator.validate_string("x", "status", result, allowed_values=["a"])
            is None
        )
        assert "status: Value must be one of: a" in result.errors


@pytest.mark.unit
class TestBookingValidator:
    def test_valid_payload_becomes_dto(self):
        request = BookingValidator().to_dto(dict(VALID_BOOKING, notes=" fringe "))
        assert request.appointment_date == date(2025, 3, 10)
        assert request.start_time == time(10, 0)
        assert request.end_time is None
        assert request.notes == "fringe"

    def test_collects_all_errors(self):
        payload = dict(VALID_BOOKING, client_id="", start_time="late")
        payload.pop("service_id")

        with pytest.raises(InvalidBookingRequest) as exc_info:
            BookingValidator().to_dto(payload)

        errors = exc_info.value.context["errors"]
        assert "client_id: is required" in errors
        assert "service_id: is required" in errors
        assert any(e.startswith("start_time:") for e in errors)

    def test_overlong_id_rejected(self):
        result = BookingValidator().validate(dict(VALID_BOOKING, staff_id="x" * 37))
        assert not result.is_valid


@pytest.mark.unit
class TestRescheduleValidator:
    def test_optional_fields(self):
        request = RescheduleValidator().to_dto(
            {"appointment_date": "2025-03-11", "start_time": "14:00", "staff_id": "manager-1"}
        )
        assert request.staff_id == "manager-1"
        assert request.branch_id is None
        assert request.end_time is None

    def test_missing_start(self):
        with pytest.raises(InvalidBookingRequest):
            RescheduleValidator().to_dto({"appointment_date": "2025-03-11"})


@pytest.mark.unit
@pytest.mark.payments
class TestSettlementValidator:
    def test_valid_payload(self):
        callback = SettlementValidator().to_dto(
            {
                "appointment_id": "a-1",
                "amount": "100.00",
                "payment_method": "telebirr",
                "status": "completed",
                "transaction_id": "tx-9",
                "paid_at": "2025-03-10T11:00:00",
            }
        )
        assert callback.amount == Decimal("100.00")
        assert callback.payment_method == PaymentMethod.TELEBIRR
        assert callback.status == PaymentStatus.COMPLETED
        assert callback.paid_at == datetime(2025, 3, 10, 11, 0)

    def test_numeric_amount_accepted(self):
        callback = SettlementValidator().to_dto(
            {
                "appointment_id": "a-1",
                "amount": 99.9,
                "payment_method": "cash",
                "status": "pending",
            }
        )
        assert callback.amount == Decimal("99.9")

    @pytest.mark.parametrize(
        "override",
        [
            {"amount": "-5"},
            {"payment_method": "bitcoin"},
            {"status": "settled"},
            {"paid_at": "yesterday"},
        ],
    )
    def test_invalid_fields(self, override):
        payload = {
            "appointment_id": "a-1",
            "amount": "10",
            "payment_method": "cash",
            "status": "completed",
        }
        payload.update(override)
        with pytest.raises(InvalidBookingRequest):
            SettlementValidator().to_dto(payload)
