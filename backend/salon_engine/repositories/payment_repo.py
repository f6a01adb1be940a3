import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_engine.core.exceptions import NotFoundError, PersistenceError
from salon_engine.db.base import Payment as DbPayment
from salon_engine.domain.entities import Payment, PaymentMethod, PaymentStatus
from salon_engine.domain.interfaces import IPaymentRepository

logger = logging.getLogger(__name__)


class PaymentRepository(IPaymentRepository):
    """Repository for Payment model operations following SOLID principles."""

    def __init__(self, db: Session):
        """
        Initialize the repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_by_id(self, payment_id: str) -> Optional[Payment]:
        row = self.db.get(DbPayment, payment_id)
        return self._to_domain(row) if row else None

    def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        stmt = select(DbPayment).where(DbPayment.transaction_id == transaction_id)
        row = self.db.execute(stmt).scalars().first()
        return self._to_domain(row) if row else None

    def get_by_appointment_id(self, appointment_id: str) -> Optional[Payment]:
        """
        Get the most recent payment of an appointment.

        Args:
            appointment_id: ID of the appointment

        Returns:
            Payment or None when the appointment has no payment
        """
        stmt = (
            select(DbPayment)
            .where(DbPayment.appointment_id == appointment_id)
            .order_by(DbPayment.created_at.desc(), DbPayment.id.desc())
        )
        row = self.db.execute(stmt).scalars().first()
        return self._to_domain(row) if row else None

    def list_by_appointment_ids(self, appointment_ids: Iterable[str]) -> List[Payment]:
        ids = list(appointment_ids)
        if not ids:
            return []
        stmt = select(DbPayment).where(DbPayment.appointment_id.in_(ids))
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def insert(self, payment: Payment) -> Payment:
        """
        Create a new payment record.

        Raises:
            PersistenceError: the write failed and was rolled back
        """
        row = DbPayment(
            id=payment.id,
            appointment_id=payment.appointment_id,
            amount=payment.amount,
            payment_method=payment.payment_method.value,
            status=payment.status.value,
            transaction_id=payment.transaction_id,
            paid_at=payment.paid_at,
            amount_mismatch=payment.amount_mismatch,
            created_at=payment.created_at,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error creating payment",
                extra={
                    "context": {
                        "appointment_id": payment.appointment_id,
                        "error": str(e),
                    }
                },
                exc_info=True,
            )
            raise PersistenceError(
                "Could not store payment",
                {"appointment_id": payment.appointment_id},
            ) from e
        return self._to_domain(row)

    def update_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        amount: Optional[Decimal] = None,
        payment_method: Optional[PaymentMethod] = None,
        paid_at: Optional[datetime] = None,
        amount_mismatch: Optional[bool] = None,
        transaction_id: Optional[str] = None,
    ) -> Payment:
        row = self.db.get(DbPayment, payment_id)
        if row is None:
            raise NotFoundError("Payment", payment_id)
        try:
            row.status = PaymentStatus(status).value
            if amount is not None:
                row.amount = amount
            if payment_method is not None:
                row.payment_method = PaymentMethod(payment_method).value
            if paid_at is not None:
                row.paid_at = paid_at
            if amount_mismatch is not None:
                row.amount_mismatch = amount_mismatch
            if transaction_id is not None:
                row.transaction_id = transaction_id
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error updating payment",
                extra={"context": {"payment_id": payment_id, "error": str(e)}},
                exc_info=True,
            )
            raise PersistenceError(
                "Could not update payment", {"payment_id": payment_id}
            ) from e
        return self._to_domain(row)

    @staticmethod
    def _to_domain(row: DbPayment) -> Payment:
        return Payment(
            id=row.id,
            appointment_id=row.appointment_id,
            amount=row.amount,
            payment_method=row.payment_method,
            status=row.status,
            transaction_id=row.transaction_id,
            paid_at=row.paid_at,
            amount_mismatch=row.amount_mismatch,
            created_at=row.created_at,
        )
