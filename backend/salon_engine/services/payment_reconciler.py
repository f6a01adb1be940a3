"""
Payment reconciliation: applies gateway settlement callbacks to payments and
finalizes commission splits once both the payment and the appointment are
completed.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from salon_engine.core.config import now_local
from salon_engine.core.exceptions import (
    AmountMismatch,
    InvalidBookingRequest,
    NotFoundError,
    OrphanPayment,
)
from salon_engine.domain.entities import (
    Appointment,
    AppointmentStatus,
    CommissionSplit,
    Payment,
    PaymentStatus,
)
from salon_engine.domain.interfaces import (
    IAppointmentRepository,
    ICatalogReader,
    IPaymentRepository,
)
from salon_engine.domain.money import round_money
from salon_engine.schemas.dtos import ReconciliationResult, SettlementCallback
from salon_engine.services.commission_service import CommissionService

logger = logging.getLogger(__name__)


class PaymentReconciler:
    """Matches settlements to appointments and triggers commission finalization."""

    def __init__(
        self,
        catalog: ICatalogReader,
        appointments: IAppointmentRepository,
        payments: IPaymentRepository,
        commissions: CommissionService,
        clock: Callable[[], datetime] = now_local,
    ):
        self.catalog = catalog
        self.appointments = appointments
        self.payments = payments
        self.commissions = commissions
        self.clock = clock

    def reconcile(self, callback: SettlementCallback) -> ReconciliationResult:
        """Apply one settlement callback.

        Payment statuses only move forward (see ``PAYMENT_TRANSITIONS``). A
        callback that would move a payment backwards is stale: it is logged
        and the stored payment is returned unchanged with ``ignored`` set.

        Raises:
            OrphanPayment: the callback references an unknown appointment.
        """
        callback.validate()

        appointment = self.appointments.get_by_id(callback.appointment_id)
        if appointment is None:
            logger.warning(
                "Settlement for unknown appointment",
                extra={
                    "context": {
                        "appointment_id": callback.appointment_id,
                        "transaction_id": callback.transaction_id,
                    }
                },
            )
            raise OrphanPayment(
                "Settlement references an unknown appointment",
                {
                    "appointment_id": callback.appointment_id,
                    "transaction_id": callback.transaction_id,
                },
            )

        existing = self._find_payment(appointment, callback)
        if existing is not None and not existing.accepts(callback.status):
            logger.warning(
                "Stale settlement ignored",
                extra={
                    "context": {
                        "payment_id": existing.id,
                        "appointment_id": appointment.id,
                        "transaction_id": callback.transaction_id,
                        "current": existing.status.value,
                        "received": callback.status.value,
                    }
                },
            )
            return ReconciliationResult(payment=existing, ignored=True)

        amount = round_money(callback.amount)
        warnings: List[AmountMismatch] = []
        mismatch = None
        if callback.status == PaymentStatus.COMPLETED:
            mismatch = amount != appointment.total_price
            if mismatch:
                warning = AmountMismatch(appointment.id, appointment.total_price, amount)
                warnings.append(warning)
                logger.warning(
                    "Settled amount differs from appointment price",
                    extra={"context": warning.to_dict()},
                )

        paid_at = callback.paid_at
        if paid_at is None and callback.status == PaymentStatus.COMPLETED:
            paid_at = self.clock()

        if existing is None:
            payment = self.payments.insert(
                Payment(
                    id=str(uuid.uuid4()),
                    appointment_id=appointment.id,
                    amount=amount,
                    payment_method=callback.payment_method,
                    status=callback.status,
                    transaction_id=callback.transaction_id,
                    paid_at=paid_at,
                    amount_mismatch=bool(mismatch),
                    created_at=self.clock(),
                )
            )
        else:
            payment = self.payments.update_status(
                existing.id,
                callback.status,
                amount=amount,
                payment_method=callback.payment_method,
                paid_at=paid_at,
                amount_mismatch=mismatch,
                transaction_id=callback.transaction_id,
            )

        logger.info(
            "Settlement applied",
            extra={
                "context": {
                    "payment_id": payment.id,
                    "appointment_id": appointment.id,
                    "transaction_id": payment.transaction_id,
                    "status": payment.status.value,
                    "amount": str(payment.amount),
                }
            },
        )

        result = ReconciliationResult(payment=payment, warnings=warnings)
        if (
            payment.status == PaymentStatus.COMPLETED
            and appointment.status == AppointmentStatus.COMPLETED
        ):
            result.split = self._finalize(appointment)
        elif payment.status == PaymentStatus.REFUNDED:
            if self.commissions.get_split(appointment.id) is not None:
                result.reversal = self.commissions.reverse(appointment.id)
        return result

    def on_appointment_completed(self, appointment_id: str) -> Optional[CommissionSplit]:
        """Finalize the split when the payment settled before completion."""
        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None or appointment.status != AppointmentStatus.COMPLETED:
            return None

        payments = self.payments.list_by_appointment_ids([appointment_id])
        if not any(p.status == PaymentStatus.COMPLETED for p in payments):
            return None
        return self._finalize(appointment)

    def _find_payment(
        self, appointment: Appointment, callback: SettlementCallback
    ) -> Optional[Payment]:
        """The payment a callback applies to; ``None`` means a new payment.

        Each gateway transaction gets its own row. A callback without a
        transaction id, or the first one carrying an id for a payment that was
        recorded without one, updates the appointment's latest payment.
        """
        if not callback.transaction_id:
            return self.payments.get_by_appointment_id(appointment.id)

        existing = self.payments.get_by_transaction_id(callback.transaction_id)
        if existing is not None:
            if existing.appointment_id != appointment.id:
                raise InvalidBookingRequest(
                    "Transaction belongs to another appointment",
                    {
                        "transaction_id": callback.transaction_id,
                        "appointment_id": appointment.id,
                    },
                )
            return existing

        latest = self.payments.get_by_appointment_id(appointment.id)
        if latest is not None and latest.transaction_id is None:
            return latest
        return None

    def _finalize(self, appointment: Appointment) -> Optional[CommissionSplit]:
        if self.commissions.is_reversed(appointment.id):
            # The ledger holds one split and one reversal per appointment
            logger.warning(
                "Commission already reversed; payment not finalized again",
                extra={"context": {"appointment_id": appointment.id}},
            )
            return None
        service = self.catalog.get_service(appointment.service_id)
        if service is None:
            raise NotFoundError("Service", appointment.service_id)
        staff = self.catalog.get_staff(appointment.staff_id)
        if staff is None:
            raise NotFoundError("Staff", appointment.staff_id)
        salon = self.catalog.get_salon(appointment.salon_id)
        return self.commissions.compute(appointment, service, staff, salon=salon)
