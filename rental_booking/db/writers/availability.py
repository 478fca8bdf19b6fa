import uuid
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import delete, insert
from sqlalchemy.engine import Connection

from rental_booking.db.readers.availability import get_blackout_range
from rental_booking.domain import BlackoutRange
from rental_booking.errors import NotFound
from rental_booking.models.availability import AvailabilityRule, BlackoutRangeRow
from rental_booking.utils.calendar import utc_now


def replace_allowed_weekdays(conn: Connection, item_id: str, weekdays: Iterable[int]) -> None:
    """
    Replace the full set of allowed check-in weekdays for an item.

    Must run inside a transaction so readers never see the half-applied set.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        item_id (str): Item ID.
        weekdays (Iterable[int]): New weekdays; empty clears the restriction.
    """
    conn.execute(delete(AvailabilityRule).where(AvailabilityRule.item_id == item_id))

    rows = [{"item_id": item_id, "weekday": day} for day in sorted(set(weekdays))]
    if rows:
        conn.execute(insert(AvailabilityRule), rows)


def insert_blackout_range(
    conn: Connection,
    item_id: str,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
) -> BlackoutRange:
    """
    Insert a blackout range and return it as stored.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        item_id (str): Item ID.
        start_date (date): First blacked-out day.
        end_date (date): Last blacked-out day (inclusive).
        reason (Optional[str]): Free-text reason shown to the owner.

    Returns:
        BlackoutRange: The created range.
    """
    blackout_id = str(uuid.uuid4())
    now = utc_now()
    conn.execute(
        insert(BlackoutRangeRow).values(
            id=blackout_id,
            item_id=item_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            created_at=now,
            updated_at=now,
        )
    )
    created = get_blackout_range(conn, blackout_id)
    if created is None:
        raise NotFound("blackout_range", blackout_id)
    return created


def delete_blackout_range(conn: Connection, blackout_id: str) -> bool:
    """
    Delete a blackout range.

    Returns:
        bool: True if a row was deleted.
    """
    result = conn.execute(delete(BlackoutRangeRow).where(BlackoutRangeRow.id == blackout_id))
    return result.rowcount > 0
