"""
Central pytest configuration for the salon engine tests.

Environment variables are set before any ``salon_engine`` import so the
module-level configuration and the lazy engine pick them up.
"""

import os
from datetime import date, datetime, time
from decimal import Decimal

import pytest

# Test database configuration (set early so import-time settings use it)
TEST_DATABASE_URL = "sqlite:///:memory:"  # In-memory SQLite for fast tests
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["TESTING"] = "true"
os.environ["LOG_TO_FILE"] = "0"
os.environ["ENABLE_NO_SHOW_SWEEP"] = "false"

from tests.config.markers import (  # noqa: E402,F401
    pytest_collection_modifyitems,
    pytest_configure,
)
from tests.factories.in_memory import InMemoryStore, seed_catalog  # noqa: E402
from tests.fixtures.integration_fixtures import (  # noqa: E402,F401
    app,
    client,
    db_session,
    engine_settings,
    seeded_db,
)

from salon_engine.core.config import EngineSettings  # noqa: E402
from salon_engine.core.locks import StaffLockRegistry  # noqa: E402
from salon_engine.services.availability_index import AvailabilityIndex  # noqa: E402
from salon_engine.services.booking_service import BookingService  # noqa: E402
from salon_engine.services.commission_service import CommissionService  # noqa: E402
from salon_engine.services.payment_reconciler import PaymentReconciler  # noqa: E402

# Fixed "now" for deterministic service tests
FROZEN_NOW = datetime(2025, 3, 10, 8, 0)
BOOKING_DAY = date(2025, 3, 10)


class FakeClock:
    """Settable clock injected into services."""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, on: date = BOOKING_DAY) -> None:
        self.now = datetime.combine(on, time(hour, minute))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        platform_fee_percent=Decimal("0"),
        working_hours_open=time(9, 0),
        working_hours_close=time(18, 0),
        no_show_grace_minutes=15,
    )


@pytest.fixture
def store() -> InMemoryStore:
    """In-memory persistence seeded with the default catalog."""
    store = InMemoryStore()
    seed_catalog(store)
    return store


@pytest.fixture
def index() -> AvailabilityIndex:
    return AvailabilityIndex()


@pytest.fixture
def locks() -> StaffLockRegistry:
    return StaffLockRegistry()


@pytest.fixture
def commission_service(store, settings) -> CommissionService:
    return CommissionService(store.ledger, settings)


@pytest.fixture
def reconciler(store, commission_service, clock) -> PaymentReconciler:
    return PaymentReconciler(
        store.catalog, store.appointments, store.payments, commission_service, clock
    )


@pytest.fixture
def booking_service(store, index, locks, settings, clock, reconciler) -> BookingService:
    return BookingService(
        store.catalog,
        store.appointments,
        index,
        locks,
        settings=settings,
        clock=clock,
        completion_listeners=[reconciler.on_appointment_completed],
    )
