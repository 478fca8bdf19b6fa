"""Shared helpers for services that talk to the database."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from sqlalchemy import exc
from sqlalchemy.engine import Connection

from rental_booking.db.readers.availability import get_allowed_weekdays, list_blackout_ranges
from rental_booking.db.readers.items import get_item, lock_item
from rental_booking.db.readers.reservations import list_active_reservations
from rental_booking.domain import AvailabilitySnapshot
from rental_booking.errors import NotFound, Unavailable

logger = structlog.get_logger(__name__)


@contextmanager
def datastore_errors(operation: str) -> Iterator[None]:
    """
    Translate connectivity failures and pool timeouts into Unavailable.

    Data, programming and integrity errors propagate untouched: they are
    deterministic, and callers that expect integrity violations (the booking
    manager) translate them into domain errors themselves.
    """
    try:
        yield
    except (exc.OperationalError, exc.InterfaceError, exc.TimeoutError) as e:
        logger.exception("datastore_unavailable", operation=operation, error=str(e))
        raise Unavailable(f"Datastore unavailable during {operation}") from e


def load_snapshot(conn: Connection, item_id: str, for_update: bool = False) -> AvailabilitySnapshot:
    """
    Read rules, blackouts and active reservations for an item in one connection.

    Args:
        conn: Connection, inside a transaction when ``for_update`` is set
        item_id: Item ID
        for_update: Take a row lock on the item (serializes bookings on Postgres)

    Raises:
        NotFound: If the item does not exist
    """
    item = lock_item(conn, item_id) if for_update else get_item(conn, item_id)
    if item is None:
        raise NotFound("item", item_id)

    return AvailabilitySnapshot(
        item_id=item_id,
        owner_id=item.owner_id,
        price_per_day=item.price_per_day,
        allowed_weekdays=get_allowed_weekdays(conn, item_id),
        blackouts=tuple(list_blackout_ranges(conn, item_id)),
        reservations=tuple(list_active_reservations(conn, item_id)),
    )
