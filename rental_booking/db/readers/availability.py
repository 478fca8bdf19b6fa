from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from rental_booking.domain import BlackoutRange
from rental_booking.models.availability import AvailabilityRule, BlackoutRangeRow


def row_to_blackout(row: Any) -> BlackoutRange:
    return BlackoutRange(
        id=row.id,
        item_id=row.item_id,
        start_date=row.start_date,
        end_date=row.end_date,
        reason=row.reason,
        created_at=row.created_at,
    )


def get_allowed_weekdays(conn: Connection, item_id: str) -> frozenset[int]:
    """
    Get the allowed check-in weekdays for an item.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        item_id (str): Item ID.

    Returns:
        frozenset[int]: Weekdays 0-6 (0 = Sunday); empty means unrestricted.
    """
    result = conn.execute(
        select(AvailabilityRule.weekday).where(AvailabilityRule.item_id == item_id)
    )
    return frozenset(row[0] for row in result)


def list_blackout_ranges(conn: Connection, item_id: str) -> list[BlackoutRange]:
    """
    List blackout ranges for an item ordered by start date.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        item_id (str): Item ID.

    Returns:
        list[BlackoutRange]: Ranges ordered by start_date, then end_date.
    """
    result = conn.execute(
        select(BlackoutRangeRow)
        .where(BlackoutRangeRow.item_id == item_id)
        .order_by(BlackoutRangeRow.start_date, BlackoutRangeRow.end_date, BlackoutRangeRow.id)
    )
    return [row_to_blackout(row) for row in result]


def get_blackout_range(conn: Connection, blackout_id: str) -> Optional[BlackoutRange]:
    row = conn.execute(
        select(BlackoutRangeRow).where(BlackoutRangeRow.id == blackout_id)
    ).fetchone()
    return row_to_blackout(row) if row else None
