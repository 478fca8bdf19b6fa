"""
Reservation ledger (read side).

The source of truth for whether an item is busy on a date. Writes go
through BookingTransactionManager, never through here.
"""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy.engine import Engine

from rental_booking.config import CALENDAR_MAX_WINDOW_DAYS
from rental_booking.db.readers.items import get_item
from rental_booking.db.readers.reservations import (
    count_pending_for_owner,
    get_reservation,
    list_active_reservations,
    list_reservations_for_owner,
    list_reservations_for_renter,
)
from rental_booking.domain import ReservationRecord
from rental_booking.errors import InvalidRange, NotFound
from rental_booking.metrics import availability_checks
from rental_booking.services._db import datastore_errors, load_snapshot
from rental_booking.services.resolver import (
    ValidationResult,
    unavailable_check_in_dates,
    validate_against_snapshot,
)
from rental_booking.utils.calendar import days_between

logger = structlog.get_logger(__name__)


class ReservationLedger:
    def __init__(self, engine: Engine, max_calendar_days: int = CALENDAR_MAX_WINDOW_DAYS) -> None:
        self.engine = engine
        self.max_calendar_days = max_calendar_days

    def list_active_reservations(
        self, item_id: str, window_start: date, window_end: date
    ) -> list[ReservationRecord]:
        """
        Pending and confirmed reservations intersecting ``[window_start, window_end)``.

        Raises:
            InvalidRange: If ``window_end`` is not after ``window_start``
            NotFound: If the item does not exist
        """
        if window_end <= window_start:
            raise InvalidRange(window_start, window_end)

        with datastore_errors("list_active_reservations"), self.engine.connect() as conn:
            if get_item(conn, item_id) is None:
                raise NotFound("item", item_id)
            return list_active_reservations(conn, item_id, window_start, window_end)

    def get_reservation(self, reservation_id: str) -> ReservationRecord:
        """
        Raises:
            NotFound: If no reservation has this ID
        """
        with datastore_errors("get_reservation"), self.engine.connect() as conn:
            reservation = get_reservation(conn, reservation_id)
        if reservation is None:
            raise NotFound("reservation", reservation_id)
        return reservation

    def list_for_renter(self, renter_id: str) -> list[ReservationRecord]:
        with datastore_errors("list_for_renter"), self.engine.connect() as conn:
            return list_reservations_for_renter(conn, renter_id)

    def list_for_owner(self, owner_id: str) -> list[ReservationRecord]:
        with datastore_errors("list_for_owner"), self.engine.connect() as conn:
            return list_reservations_for_owner(conn, owner_id)

    def pending_count_for_owner(self, owner_id: str) -> int:
        """Number of reservations awaiting confirmation on the owner's items."""
        with datastore_errors("pending_count_for_owner"), self.engine.connect() as conn:
            return count_pending_for_owner(conn, owner_id)

    def quote(self, item_id: str, check_in: date, check_out: date) -> ValidationResult:
        """
        Advisory validation of a proposed stay, for immediate UI feedback.

        Reads a snapshot without any locking, so the answer may already be
        stale when the user confirms. Only BookingTransactionManager decides
        whether a reservation is created.
        """
        with datastore_errors("quote"), self.engine.connect() as conn:
            snapshot = load_snapshot(conn, item_id)

        result = validate_against_snapshot(snapshot, check_in, check_out)
        availability_checks.labels(result="ok" if result.ok else result.error.kind).inc()
        return result

    def unavailable_check_in_dates(
        self, item_id: str, window_start: date, window_end: date
    ) -> list[date]:
        """
        Dates in the inclusive window that cannot be chosen as a check-in.

        Raises:
            InvalidRange: If the window is reversed or longer than the configured maximum
            NotFound: If the item does not exist
        """
        span = days_between(window_start, window_end) + 1
        if span > self.max_calendar_days:
            raise InvalidRange(
                window_start,
                window_end,
                f"Calendar window of {span} days exceeds the maximum of {self.max_calendar_days}",
            )

        with datastore_errors("unavailable_check_in_dates"), self.engine.connect() as conn:
            snapshot = load_snapshot(conn, item_id)

        return unavailable_check_in_dates(
            window_start,
            window_end,
            snapshot.allowed_weekdays,
            snapshot.blackouts,
            snapshot.reservations,
        )
