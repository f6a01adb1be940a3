"""
Service wiring.

The availability index and the staff lock registry are process-wide and live
in ``app.extensions["salon_engine"]``; repositories and services are built per
database session.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from flask import Flask, current_app
from sqlalchemy.orm import Session

from salon_engine.core.config import EngineSettings
from salon_engine.core.locks import StaffLockRegistry
from salon_engine.db.session import SessionLocal
from salon_engine.domain.interfaces import IRatingSource
from salon_engine.repositories.appointment_repo import AppointmentRepository
from salon_engine.repositories.catalog_repo import CatalogRepository
from salon_engine.repositories.commission_repo import CommissionLedgerRepository
from salon_engine.repositories.payment_repo import PaymentRepository
from salon_engine.repositories.rating_repo import RatingRepository
from salon_engine.services.analytics_service import AnalyticsService
from salon_engine.services.availability_index import AvailabilityIndex
from salon_engine.services.booking_service import BookingService
from salon_engine.services.commission_service import CommissionService
from salon_engine.services.payment_reconciler import PaymentReconciler

EXTENSION_KEY = "salon_engine"


@dataclass
class EngineState:
    settings: EngineSettings
    index: AvailabilityIndex = field(default_factory=AvailabilityIndex)
    locks: StaffLockRegistry = field(default_factory=StaffLockRegistry)


@dataclass
class Services:
    booking: BookingService
    commissions: CommissionService
    reconciler: PaymentReconciler
    analytics: AnalyticsService


def init_engine_state(app: Flask, settings: Optional[EngineSettings] = None) -> EngineState:
    state = EngineState(settings=settings or EngineSettings.from_env())
    app.extensions[EXTENSION_KEY] = state
    return state


def get_engine_state(app: Optional[Flask] = None) -> EngineState:
    return (app or current_app).extensions[EXTENSION_KEY]


def build_services(
    db: Session,
    state: EngineState,
    ratings: Optional[IRatingSource] = None,
) -> Services:
    """Build the service graph over one database session."""
    catalog = CatalogRepository(db)
    appointments = AppointmentRepository(db)
    payments = PaymentRepository(db)

    commissions = CommissionService(CommissionLedgerRepository(db), state.settings)
    reconciler = PaymentReconciler(catalog, appointments, payments, commissions)
    booking = BookingService(
        catalog,
        appointments,
        state.index,
        state.locks,
        settings=state.settings,
        completion_listeners=[reconciler.on_appointment_completed],
    )
    analytics = AnalyticsService(
        catalog, appointments, payments, ratings or RatingRepository(db)
    )
    return Services(booking, commissions, reconciler, analytics)


@contextmanager
def session_services(app: Optional[Flask] = None) -> Iterator[Services]:
    """Services bound to a fresh session that is closed on exit."""
    db = SessionLocal()
    try:
        yield build_services(db, get_engine_state(app))
    finally:
        db.close()
