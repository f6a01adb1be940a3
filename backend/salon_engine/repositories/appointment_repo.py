"""
Appointment repository implementation following SOLID principles.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_engine.core.exceptions import NotFoundError, PersistenceError
from salon_engine.db.base import Appointment as DbAppointment
from salon_engine.domain.entities import Appointment as DomainAppointment
from salon_engine.domain.entities import AppointmentStatus
from salon_engine.domain.interfaces import IAppointmentRepository

logger = logging.getLogger(__name__)


class AppointmentRepository(IAppointmentRepository):
    """Repository for Appointment persistence operations."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_by_id(self, appointment_id: str) -> Optional[DomainAppointment]:
        """Get appointment by ID."""
        db_appointment = self.db.get(DbAppointment, appointment_id)
        return self._to_domain(db_appointment) if db_appointment else None

    def list_by_staff_and_date_range(
        self, staff_id: str, start_date: date, end_date: date
    ) -> List[DomainAppointment]:
        stmt = (
            select(DbAppointment)
            .where(
                DbAppointment.staff_id == staff_id,
                DbAppointment.appointment_date >= start_date,
                DbAppointment.appointment_date <= end_date,
            )
            .order_by(DbAppointment.appointment_date, DbAppointment.start_time)
        )
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def list_by_salon_and_date_range(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
        branch_id: Optional[str] = None,
    ) -> List[DomainAppointment]:
        stmt = select(DbAppointment).where(
            DbAppointment.salon_id == salon_id,
            DbAppointment.appointment_date >= start_date,
            DbAppointment.appointment_date <= end_date,
        )
        if statuses is not None:
            stmt = stmt.where(
                DbAppointment.status.in_([AppointmentStatus(s).value for s in statuses])
            )
        if branch_id is not None:
            stmt = stmt.where(DbAppointment.branch_id == branch_id)
        stmt = stmt.order_by(DbAppointment.appointment_date, DbAppointment.start_time)
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def list_by_status(
        self, status: AppointmentStatus, until: Optional[date] = None
    ) -> List[DomainAppointment]:
        stmt = select(DbAppointment).where(
            DbAppointment.status == AppointmentStatus(status).value
        )
        if until is not None:
            stmt = stmt.where(DbAppointment.appointment_date <= until)
        stmt = stmt.order_by(DbAppointment.appointment_date, DbAppointment.start_time)
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def insert(self, appointment: DomainAppointment) -> DomainAppointment:
        """Create a new appointment."""
        db_appointment = DbAppointment(
            id=appointment.id,
            salon_id=appointment.salon_id,
            branch_id=appointment.branch_id,
            staff_id=appointment.staff_id,
            client_id=appointment.client_id,
            service_id=appointment.service_id,
            appointment_date=appointment.appointment_date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            total_price=appointment.total_price,
            status=appointment.status.value,
            notes=appointment.notes,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )
        try:
            self.db.add(db_appointment)
            self.db.commit()
            self.db.refresh(db_appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error creating appointment",
                extra={"context": {"appointment_id": appointment.id, "error": str(e)}},
                exc_info=True,
            )
            raise PersistenceError(
                "Could not store appointment", {"appointment_id": appointment.id}
            ) from e
        return self._to_domain(db_appointment)

    def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> DomainAppointment:
        db_appointment = self._require(appointment_id)
        try:
            db_appointment.status = AppointmentStatus(status).value
            self.db.commit()
            self.db.refresh(db_appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error updating appointment status",
                extra={
                    "context": {
                        "appointment_id": appointment_id,
                        "status": str(status),
                        "error": str(e),
                    }
                },
                exc_info=True,
            )
            raise PersistenceError(
                "Could not update appointment status",
                {"appointment_id": appointment_id},
            ) from e
        return self._to_domain(db_appointment)

    def update_schedule(self, appointment: DomainAppointment) -> DomainAppointment:
        db_appointment = self._require(appointment.id)
        try:
            db_appointment.staff_id = appointment.staff_id
            db_appointment.branch_id = appointment.branch_id
            db_appointment.appointment_date = appointment.appointment_date
            db_appointment.start_time = appointment.start_time
            db_appointment.end_time = appointment.end_time
            db_appointment.updated_at = appointment.updated_at
            self.db.commit()
            self.db.refresh(db_appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Error rescheduling appointment",
                extra={"context": {"appointment_id": appointment.id, "error": str(e)}},
                exc_info=True,
            )
            raise PersistenceError(
                "Could not reschedule appointment", {"appointment_id": appointment.id}
            ) from e
        return self._to_domain(db_appointment)

    def _require(self, appointment_id: str) -> DbAppointment:
        db_appointment = self.db.get(DbAppointment, appointment_id)
        if db_appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return db_appointment

    def _to_domain(self, db_appointment: DbAppointment) -> DomainAppointment:
        """Convert database model to domain entity."""
        return DomainAppointment(
            id=db_appointment.id,
            salon_id=db_appointment.salon_id,
            branch_id=db_appointment.branch_id,
            staff_id=db_appointment.staff_id,
            client_id=db_appointment.client_id,
            service_id=db_appointment.service_id,
            appointment_date=db_appointment.appointment_date,
            start_time=db_appointment.start_time,
            end_time=db_appointment.end_time,
            total_price=db_appointment.total_price,
            status=db_appointment.status,
            notes=db_appointment.notes,
            created_at=db_appointment.created_at,
            updated_at=db_appointment.updated_at,
        )
