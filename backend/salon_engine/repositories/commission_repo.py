"""
Commission ledger backed by the ``commission_entries`` table.

The unique (appointment_id, entry_type) constraint makes ``insert_once`` a
finalize-once write: a concurrent loser gets an IntegrityError, rolls back
and returns the winner's row.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from salon_engine.core.exceptions import PersistenceError
from salon_engine.db.base import CommissionEntry
from salon_engine.domain.entities import CommissionSplit, LedgerEntryType
from salon_engine.domain.interfaces import ICommissionLedger

logger = logging.getLogger(__name__)


class CommissionLedgerRepository(ICommissionLedger):
    def __init__(self, db: Session):
        self.db = db

    def get_entry(
        self, appointment_id: str, entry_type: LedgerEntryType = LedgerEntryType.SPLIT
    ) -> Optional[CommissionSplit]:
        stmt = select(CommissionEntry).where(
            CommissionEntry.appointment_id == appointment_id,
            CommissionEntry.entry_type == LedgerEntryType(entry_type).value,
        )
        row = self.db.execute(stmt).scalars().first()
        return self._to_domain(row) if row else None

    def insert_once(self, split: CommissionSplit) -> CommissionSplit:
        row = CommissionEntry(
            appointment_id=split.appointment_id,
            entry_type=split.entry_type.value,
            staff_id=split.staff_id,
            salon_id=split.salon_id,
            staff_share=split.staff_share,
            salon_share=split.salon_share,
            platform_share=split.platform_share,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except IntegrityError:
            self.db.rollback()
            existing = self.get_entry(split.appointment_id, split.entry_type)
            if existing is None:
                raise PersistenceError(
                    "Could not store commission entry",
                    {"appointment_id": split.appointment_id},
                )
            logger.info(
                "Commission entry already finalized",
                extra={
                    "context": {
                        "appointment_id": split.appointment_id,
                        "entry_type": split.entry_type.value,
                    }
                },
            )
            return existing
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error storing commission entry",
                extra={
                    "context": {
                        "appointment_id": split.appointment_id,
                        "error": str(e),
                    }
                },
                exc_info=True,
            )
            raise PersistenceError(
                "Could not store commission entry",
                {"appointment_id": split.appointment_id},
            ) from e
        return self._to_domain(row)

    def list_by_appointment(self, appointment_id: str) -> List[CommissionSplit]:
        stmt = (
            select(CommissionEntry)
            .where(CommissionEntry.appointment_id == appointment_id)
            .order_by(CommissionEntry.id)
        )
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    @staticmethod
    def _to_domain(row: CommissionEntry) -> CommissionSplit:
        return CommissionSplit(
            appointment_id=row.appointment_id,
            staff_share=row.staff_share,
            salon_share=row.salon_share,
            platform_share=row.platform_share,
            staff_id=row.staff_id,
            salon_id=row.salon_id,
            entry_type=LedgerEntryType(row.entry_type),
            created_at=row.created_at,
        )
