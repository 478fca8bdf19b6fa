"""
Calendar arithmetic for rental date ranges.

All values are floating calendar dates (``datetime.date``): no time of day and
no timezone, so a date means the same day to every client and server.

Ranges are half-open ``[start, end)`` unless stated otherwise. A reservation
``[2025-12-15, 2025-12-20)`` holds the item on the 15th through the 19th, and
the 20th is free for the next renter to check in.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from rental_booking.errors import InvalidDateFormat

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def weekday(day: date) -> int:
    """
    Return the weekday of ``day`` with 0 = Sunday through 6 = Saturday.

    This is the convention used for allowed check-in weekdays everywhere in
    the service (it differs from ``date.weekday()``, where 0 = Monday).

    Example:
        >>> weekday(date(2025, 12, 14))  # a Sunday
        0
    """
    return day.isoweekday() % 7


def days_between(start: date, end: date) -> int:
    """Signed number of days from ``start`` to ``end``."""
    return (end - start).days


def add_days(day: date, n: int) -> date:
    return day + timedelta(days=n)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Half-open overlap test: ``[a_start, a_end)`` and ``[b_start, b_end)``.

    Ranges that only touch (``a_end == b_start``) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def format_iso(day: date) -> str:
    return day.isoformat()


def parse_iso(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    Args:
        value: Calendar date in extended ISO 8601 form

    Returns:
        date: Parsed date; ``format_iso(parse_iso(s)) == s`` for valid input

    Raises:
        InvalidDateFormat: If the string is not a valid ``YYYY-MM-DD`` date
    """
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise InvalidDateFormat(value)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidDateFormat(value) from e


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date in the half-open range ``[start, end)``."""
    current = start
    while current < end:
        yield current
        current = add_days(current, 1)


def iter_days_through(start: date, last: date) -> Iterator[date]:
    """Yield every date in ``[start, last]``, inclusive; ``last`` may be ``date.max``."""
    current = start
    while current <= last:
        yield current
        if current == last:
            return
        current = add_days(current, 1)


def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime, for audit timestamps."""
    return datetime.now(timezone.utc)
