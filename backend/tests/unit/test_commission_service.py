"""
Unit tests for commission calculation and the ledger write.

This module tests:
- calculate_split arithmetic and half-up rounding
- Shares always summing exactly to the appointment price
- Rule validation
- Finalize-once behaviour of CommissionService.compute
- Reversal entries
"""

import random
from datetime import date, time
from decimal import Decimal

import pytest

from salon_engine.core.config import EngineSettings
from salon_engine.core.exceptions import InvalidCommissionRule, NotFoundError
from salon_engine.domain.entities import (
    Appointment,
    AppointmentStatus,
    CommissionType,
    LedgerEntryType,
    Salon,
)
from salon_engine.services.commission_service import CommissionService, calculate_split
from tests.factories.repository_factories import CommissionLedgerFactory


def completed_appointment(price: str = "100.00", service_id: str = "haircut") -> Appointment:
    return Appointment(
        id="appt-1",
        salon_id="salon-1",
        branch_id="branch-1",
        staff_id="stylist-1",
        client_id="client-1",
        service_id=service_id,
        appointment_date=date(2025, 3, 10),
        start_time=time(10, 0),
        end_time=time(10, 30),
        total_price=Decimal(price),
        status=AppointmentStatus.COMPLETED,
    )


@pytest.mark.unit
@pytest.mark.commission
class TestCalculateSplit:
    def test_fixed_rule_with_platform_fee(self):
        split = calculate_split(
            Decimal("100.00"),
            CommissionType.FIXED,
            Decimal("30"),
            platform_fee_percent=Decimal("5"),
        )
        assert split.platform_share == Decimal("5.00")
        assert split.staff_share == Decimal("30.00")
        assert split.salon_share == Decimal("65.00")

    def test_percentage_rule(self):
        split = calculate_split("100.00", CommissionType.PERCENTAGE, "40")
        assert (split.staff_share, split.salon_share, split.platform_share) == (
            Decimal("40.00"),
            Decimal("60.00"),
            Decimal("0.00"),
        )

    def test_percentage_rule_applies_to_amount_after_fee(self):
        split = calculate_split(
            "200.00", CommissionType.PERCENTAGE, "50", platform_fee_percent="10"
        )
        assert split.platform_share == Decimal("20.00")
        assert split.staff_share == Decimal("90.00")
        assert split.salon_share == Decimal("90.00")

    def test_staff_percentage_scales_percentage_rules(self):
        split = calculate_split(
            "100.00", CommissionType.PERCENTAGE, "40", staff_percentage="50"
        )
        assert split.staff_share == Decimal("20.00")
        assert split.salon_share == Decimal("80.00")

    def test_staff_percentage_ignored_by_fixed_rules(self):
        split = calculate_split("100.00", CommissionType.FIXED, "30", staff_percentage="50")
        assert split.staff_share == Decimal("30.00")

    def test_fixed_rule_capped_at_distributable(self):
        split = calculate_split(
            "50.00", CommissionType.FIXED, "80", platform_fee_percent="10"
        )
        assert split.staff_share == Decimal("45.00")
        assert split.salon_share == Decimal("0.00")

    def test_rounds_half_up(self):
        split = calculate_split(
            "0.05", CommissionType.PERCENTAGE, "0", platform_fee_percent="50"
        )
        assert split.platform_share == Decimal("0.03")
        assert split.salon_share == Decimal("0.02")

    def test_salon_takes_rounding_remainder(self):
        split = calculate_split("10.00", CommissionType.PERCENTAGE, "33.333")
        assert split.staff_share == Decimal("3.33")
        assert split.salon_share == Decimal("6.67")

    def test_free_service(self):
        split = calculate_split("0", CommissionType.PERCENTAGE, "40")
        assert split.total == Decimal("0.00")

    def test_shares_always_sum_to_total(self):
        rng = random.Random(42)
        for _ in range(500):
            total = Decimal(rng.randint(0, 100000)) / 100
            commission_type = rng.choice(list(CommissionType))
            if commission_type == CommissionType.PERCENTAGE:
                value = Decimal(rng.randint(0, 10000)) / 100
            else:
                value = Decimal(rng.randint(0, 200000)) / 100
            staff_pct = Decimal(rng.randint(0, 100))
            fee = Decimal(rng.randint(0, 2000)) / 100

            split = calculate_split(
                total,
                commission_type,
                value,
                staff_percentage=staff_pct,
                platform_fee_percent=fee,
            )

            assert split.staff_share + split.salon_share + split.platform_share == total
            assert split.staff_share >= 0
            assert split.salon_share >= 0
            assert split.platform_share >= 0
            for share in (split.staff_share, split.salon_share, split.platform_share):
                assert share == share.quantize(Decimal("0.01"))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"total_price": "-1"},
            {"commission_value": "-5"},
            {"commission_value": "101"},
            {"staff_percentage": "120"},
            {"platform_fee_percent": "-1"},
            {"platform_fee_percent": "150"},
        ],
    )
    def test_invalid_rules_rejected(self, kwargs):
        args = {
            "total_price": "100",
            "commission_type": CommissionType.PERCENTAGE,
            "commission_value": "40",
        }
        args.update(kwargs)
        with pytest.raises(InvalidCommissionRule):
            calculate_split(**args)

    def test_fixed_value_above_hundred_is_allowed(self):
        split = calculate_split("500.00", CommissionType.FIXED, "150")
        assert split.staff_share == Decimal("150.00")

    def test_unknown_commission_type(self):
        with pytest.raises(ValueError):
            calculate_split("100", "tiered", "40")


@pytest.mark.unit
@pytest.mark.commission
@pytest.mark.services
class TestCommissionService:
    def test_compute_finalizes_once(self, commission_service, store):
        catalog = store.catalog
        appointment = completed_appointment()
        args = (appointment, catalog.services["haircut"], catalog.staff["stylist-1"])

        first = commission_service.compute(*args)
        catalog.services["haircut"].commission_value = Decimal("10")
        second = commission_service.compute(*args)

        assert first == second
        assert second.staff_share == Decimal("40.00")
        assert len(store.ledger.entries) == 1

    def test_force_recomputes_without_persisting(self, commission_service, store):
        catalog = store.catalog
        appointment = completed_appointment()
        commission_service.compute(
            appointment, catalog.services["haircut"], catalog.staff["stylist-1"]
        )
        catalog.services["haircut"].commission_value = Decimal("10")

        forced = commission_service.compute(
            appointment,
            catalog.services["haircut"],
            catalog.staff["stylist-1"],
            force=True,
        )

        assert forced.staff_share == Decimal("10.00")
        assert commission_service.get_split("appt-1").staff_share == Decimal("40.00")
        assert len(store.ledger.entries) == 1

    def test_salon_rate_overrides_configured_fee(self, store):
        service = CommissionService(
            store.ledger, EngineSettings(platform_fee_percent=Decimal("10"))
        )
        salon = Salon(id="salon-1", commission_rate=Decimal("5"))
        split = service.compute(
            completed_appointment(service_id="color"),
            store.catalog.services["color"],
            store.catalog.staff["stylist-1"],
            salon=salon,
        )
        assert split.platform_share == Decimal("5.00")
        assert split.salon_share == Decimal("65.00")

    def test_configured_fee_used_without_salon_rate(self, store):
        service = CommissionService(
            store.ledger, EngineSettings(platform_fee_percent=Decimal("10"))
        )
        assert service.platform_fee_for(Salon(id="salon-1")) == Decimal("10")
        assert service.platform_fee_for(None) == Decimal("10")

    def test_split_carries_identifiers(self, commission_service, store):
        split = commission_service.compute(
            completed_appointment(),
            store.catalog.services["haircut"],
            store.catalog.staff["stylist-1"],
        )
        assert split.appointment_id == "appt-1"
        assert split.staff_id == "stylist-1"
        assert split.salon_id == "salon-1"
        assert split.entry_type == LedgerEntryType.SPLIT

    def test_reverse_negates_split_once(self, commission_service, store):
        split = commission_service.compute(
            completed_appointment(),
            store.catalog.services["haircut"],
            store.catalog.staff["stylist-1"],
        )

        reversal = commission_service.reverse("appt-1")
        again = commission_service.reverse("appt-1")

        assert reversal == again
        assert reversal.entry_type == LedgerEntryType.REVERSAL
        assert reversal.staff_share == -split.staff_share
        assert reversal.total == -split.total
        assert len(store.ledger.list_by_appointment("appt-1")) == 2

    def test_reverse_without_split(self, commission_service):
        with pytest.raises(NotFoundError):
            commission_service.reverse("missing")

    def test_ledger_entry_returned_when_insert_loses_race(self, store):
        winner = calculate_split(
            "100.00", CommissionType.PERCENTAGE, "25", appointment_id="appt-1"
        )
        ledger = CommissionLedgerFactory.create_mock()
        ledger.insert_once.side_effect = lambda split: winner
        service = CommissionService(ledger, EngineSettings())

        result = service.compute(
            completed_appointment(),
            store.catalog.services["haircut"],
            store.catalog.staff["stylist-1"],
        )

        assert result is winner
        ledger.insert_once.assert_called_once()
