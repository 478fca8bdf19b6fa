"""
FastAPI dependency injection providers.

Route handlers receive the engine and the service objects through these
providers instead of importing module globals, so tests can swap them with
``app.dependency_overrides``.

The booking manager is process-wide: its per-item lock registry only
serializes requests that share the same instance.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.engine import Engine

from rental_booking.db.engine import engine
from rental_booking.services.booking import BookingTransactionManager
from rental_booking.services.catalog import ItemCatalog
from rental_booking.services.ledger import ReservationLedger
from rental_booking.services.rule_store import AvailabilityRuleStore


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
    """
    yield engine


@lru_cache()
def _manager_for(bound: Engine) -> BookingTransactionManager:
    return BookingTransactionManager(bound)


def get_booking_manager(db: Engine = Depends(get_db_engine)) -> BookingTransactionManager:
    """One manager (and lock registry) per engine for the life of the process."""
    return _manager_for(db)


def get_rule_store(db: Engine = Depends(get_db_engine)) -> AvailabilityRuleStore:
    return AvailabilityRuleStore(db)


def get_ledger(db: Engine = Depends(get_db_engine)) -> ReservationLedger:
    return ReservationLedger(db)


def get_item_catalog(db: Engine = Depends(get_db_engine)) -> ItemCatalog:
    return ItemCatalog(db)


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity supplied by the authentication layer in front of this service.

    Raises:
        HTTPException: 401 if the X-User-ID header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )
    return x_user_id.strip()
