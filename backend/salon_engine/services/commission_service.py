"""
Commission calculation and the finalize-once ledger write.

``calculate_split`` is pure Decimal arithmetic. Shares are rounded half-up to
the cent and the salon share takes the remainder, so
``staff + salon + platform == total_price`` holds exactly.
"""

import logging
from decimal import Decimal
from typing import Optional

from salon_engine.core.config import EngineSettings
from salon_engine.core.exceptions import InvalidCommissionRule, NotFoundError
from salon_engine.domain.entities import (
    Appointment,
    CommissionSplit,
    CommissionType,
    LedgerEntryType,
    Salon,
    Service,
    Staff,
)
from salon_engine.domain.interfaces import ICommissionLedger
from salon_engine.domain.money import ZERO, Number, round_money, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _check_percent(value: Decimal, name: str) -> None:
    if value < 0 or value > HUNDRED:
        raise InvalidCommissionRule(
            f"{name} must be between 0 and 100", {name: str(value)}
        )


def calculate_split(
    total_price: Number,
    commission_type: CommissionType,
    commission_value: Number,
    staff_percentage: Number = HUNDRED,
    platform_fee_percent: Number = ZERO,
    appointment_id: str = "",
    staff_id: Optional[str] = None,
    salon_id: Optional[str] = None,
) -> CommissionSplit:
    """Divide ``total_price`` between staff, salon and platform.

    The platform fee comes off the top. A percentage rule pays the staff
    ``commission_value`` percent of the remainder, scaled by the staff
    member's own percentage; a fixed rule pays ``commission_value`` capped at
    the remainder and ignores the staff percentage.

    Raises:
        InvalidCommissionRule: negative values or percentages outside 0-100.
    """
    total = round_money(total_price)
    value = to_decimal(commission_value)
    staff_pct = to_decimal(staff_percentage)
    fee_pct = to_decimal(platform_fee_percent)
    commission_type = CommissionType(commission_type)

    if total < 0:
        raise InvalidCommissionRule(
            "Total price cannot be negative", {"total_price": str(total)}
        )
    if value < 0:
        raise InvalidCommissionRule(
            "Commission value cannot be negative", {"commission_value": str(value)}
        )
    if commission_type == CommissionType.PERCENTAGE:
        _check_percent(value, "commission_value")
    _check_percent(staff_pct, "staff_percentage")
    _check_percent(fee_pct, "platform_fee_percent")

    platform_share = round_money(total * fee_pct / HUNDRED)
    distributable = total - platform_share

    if commission_type == CommissionType.PERCENTAGE:
        staff_share = round_money(
            distributable * value / HUNDRED * staff_pct / HUNDRED
        )
    else:
        staff_share = min(round_money(value), distributable)

    salon_share = total - platform_share - staff_share

    return CommissionSplit(
        appointment_id=appointment_id,
        staff_share=staff_share,
        salon_share=salon_share,
        platform_share=platform_share,
        staff_id=staff_id,
        salon_id=salon_id,
    )


class CommissionService:
    """Computes splits and records them exactly once in the ledger."""

    def __init__(
        self,
        ledger: ICommissionLedger,
        settings: Optional[EngineSettings] = None,
    ):
        self.ledger = ledger
        self.settings = settings or EngineSettings()

    def platform_fee_for(self, salon: Optional[Salon]) -> Decimal:
        """The salon's negotiated rate when set, else the configured fee."""
        if salon is not None and salon.commission_rate is not None:
            return to_decimal(salon.commission_rate)
        return self.settings.platform_fee_percent

    def compute(
        self,
        appointment: Appointment,
        service: Service,
        staff: Staff,
        salon: Optional[Salon] = None,
        force: bool = False,
    ) -> CommissionSplit:
        """Return the appointment's split, finalizing it on first call.

        With ``force=True`` the split is recomputed from the current rules
        and returned without touching the ledger.
        """
        if not force:
            existing = self.ledger.get_entry(appointment.id, LedgerEntryType.SPLIT)
            if existing is not None:
                return existing

        split = calculate_split(
            appointment.total_price,
            service.commission_type,
            service.commission_value,
            staff_percentage=staff.commission_percentage,
            platform_fee_percent=self.platform_fee_for(salon),
            appointment_id=appointment.id,
            staff_id=staff.id,
            salon_id=appointment.salon_id,
        )
        if force:
            return split

        stored = self.ledger.insert_once(split)
        logger.info(
            "Commission split finalized",
            extra={
                "context": {
                    "appointment_id": appointment.id,
                    "staff_share": str(stored.staff_share),
                    "salon_share": str(stored.salon_share),
                    "platform_share": str(stored.platform_share),
                }
            },
        )
        return stored

    def get_split(self, appointment_id: str) -> Optional[CommissionSplit]:
        return self.ledger.get_entry(appointment_id, LedgerEntryType.SPLIT)

    def is_reversed(self, appointment_id: str) -> bool:
        return (
            self.ledger.get_entry(appointment_id, LedgerEntryType.REVERSAL) is not None
        )

    def reverse(self, appointment_id: str) -> CommissionSplit:
        """Append the compensating entry for a finalized split (once).

        Raises:
            NotFoundError: no split was finalized for the appointment.
        """
        existing = self.ledger.get_entry(appointment_id, LedgerEntryType.REVERSAL)
        if existing is not None:
            return existing

        split = self.ledger.get_entry(appointment_id, LedgerEntryType.SPLIT)
        if split is None:
            raise NotFoundError("CommissionSplit", appointment_id)

        reversal = self.ledger.insert_once(split.reversed())
        logger.info(
            "Commission split reversed",
            extra={"context": {"appointment_id": appointment_id}},
        )
        return reversal
