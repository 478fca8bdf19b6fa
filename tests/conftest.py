"""
Shared fixtures for the booking engine test suite.

Every integration test gets its own SQLite file database under pytest's
tmp_path with the full schema created from the ORM metadata.
"""

from __future__ import annotations

import os
import tempfile
from datetime import date
from decimal import Decimal
from typing import Generator

# Configuration is read at import time, so it must be in place first
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'rental_booking_test.db')}"
)
os.environ.setdefault("PAYMENT_WEBHOOK_USERNAME", "payments")
os.environ.setdefault("PAYMENT_WEBHOOK_PASSWORD", "s3cret")
os.environ.setdefault("CATALOG_SYNC_USERNAME", "listings")
os.environ.setdefault("CATALOG_SYNC_PASSWORD", "l1stings")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from rental_booking.db.engine import build_engine  # noqa: E402
from rental_booking.db.writers.items import insert_items  # noqa: E402
from rental_booking.dependencies import get_db_engine  # noqa: E402
from rental_booking.domain import ReservationRecord, ReservationStatus  # noqa: E402
from rental_booking.main import app  # noqa: E402
from rental_booking.models.base import Base  # noqa: E402
from rental_booking.services.booking import BookingTransactionManager  # noqa: E402
from rental_booking.services.ledger import ReservationLedger  # noqa: E402
from rental_booking.services.rule_store import AvailabilityRuleStore  # noqa: E402

ITEM_ID = "item-1"
OTHER_ITEM_ID = "item-2"
OWNER_ID = "owner-1"
RENTER_ID = "renter-1"
OTHER_RENTER_ID = "renter-2"
PRICE_PER_DAY = Decimal("50.00")


def make_reservation(
    check_in: date,
    check_out: date,
    status: ReservationStatus = ReservationStatus.CONFIRMED,
    reservation_id: str = "res-1",
    item_id: str = ITEM_ID,
) -> ReservationRecord:
    """Build a detached reservation for resolver tests."""
    return ReservationRecord(
        id=reservation_id,
        item_id=item_id,
        renter_id=RENTER_ID,
        owner_id=OWNER_ID,
        check_in_date=check_in,
        check_out_date=check_out,
        total_price=PRICE_PER_DAY * (check_out - check_in).days,
        status=status,
    )


@pytest.fixture
def db_engine(tmp_path: os.PathLike) -> Generator[Engine, None, None]:
    """Fresh SQLite database with the booking schema and two seeded items."""
    engine = build_engine(f"sqlite:///{os.path.join(str(tmp_path), 'booking.db')}")
    Base.metadata.create_all(engine)
    insert_items(
        engine,
        [
            {"id": ITEM_ID, "owner_id": OWNER_ID, "price_per_day": PRICE_PER_DAY},
            {"id": OTHER_ITEM_ID, "owner_id": OWNER_ID, "price_per_day": "20.00"},
        ],
    )

    yield engine

    engine.dispose()


@pytest.fixture
def rule_store(db_engine: Engine) -> AvailabilityRuleStore:
    return AvailabilityRuleStore(db_engine)


@pytest.fixture
def ledger(db_engine: Engine) -> ReservationLedger:
    return ReservationLedger(db_engine)


@pytest.fixture
def manager(db_engine: Engine) -> BookingTransactionManager:
    return BookingTransactionManager(db_engine, lock_timeout=10.0)


@pytest.fixture
def client(db_engine: Engine) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the per-test database."""
    app.dependency_overrides[get_db_engine] = lambda: db_engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
