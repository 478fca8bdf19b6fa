"""
Availability rule store: allowed check-in weekdays and blackout ranges.

All mutations are owner-only. Reads are open to anyone (calendar rendering
needs them) and need no locking: a booking attempt always re-reads rules
inside its own critical section.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from rental_booking.db.readers.availability import (
    get_allowed_weekdays,
    get_blackout_range,
    list_blackout_ranges,
)
from rental_booking.db.readers.items import get_item
from rental_booking.db.readers.reservations import list_active_reservations
from rental_booking.db.writers.availability import (
    delete_blackout_range,
    insert_blackout_range,
    replace_allowed_weekdays,
)
from rental_booking.domain import BlackoutAddResult, BlackoutRange, ItemInfo
from rental_booking.errors import InvalidRange, NotFound, Unauthorized
from rental_booking.metrics import rule_changes
from rental_booking.services._db import datastore_errors

logger = structlog.get_logger(__name__)


def _require_item(conn: Connection, item_id: str) -> ItemInfo:
    item = get_item(conn, item_id)
    if item is None:
        raise NotFound("item", item_id)
    return item


def _require_owner(item: ItemInfo, caller_id: str) -> None:
    if caller_id != item.owner_id:
        raise Unauthorized(caller_id, item.item_id)


class AvailabilityRuleStore:
    """Owner-managed availability configuration for items."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_allowed_weekdays(self, item_id: str) -> frozenset[int]:
        """
        Allowed check-in weekdays (0 = Sunday); an empty set means unrestricted.

        Raises:
            NotFound: If the item does not exist
        """
        with datastore_errors("get_allowed_weekdays"), self.engine.connect() as conn:
            _require_item(conn, item_id)
            return get_allowed_weekdays(conn, item_id)

    def set_allowed_weekdays(
        self, item_id: str, caller_id: str, weekdays: Iterable[int]
    ) -> frozenset[int]:
        """
        Replace the item's allowed check-in weekdays with ``weekdays``.

        The set is replaced, not merged. Passing an empty collection removes
        the restriction.

        Raises:
            ValueError: If a weekday is outside 0-6
            NotFound: If the item does not exist
            Unauthorized: If ``caller_id`` is not the item's owner
        """
        new_days = frozenset(weekdays)
        invalid = sorted(d for d in new_days if not 0 <= d <= 6)
        if invalid:
            raise ValueError(f"Weekdays must be between 0 and 6, got {invalid}")

        with datastore_errors("set_allowed_weekdays"), self.engine.begin() as conn:
            item = _require_item(conn, item_id)
            _require_owner(item, caller_id)
            replace_allowed_weekdays(conn, item_id, new_days)

        rule_changes.labels(change="weekdays_set").inc()
        logger.info("allowed_weekdays_set", item_id=item_id, weekdays=sorted(new_days))
        return new_days

    def list_blackout_ranges(self, item_id: str) -> list[BlackoutRange]:
        with datastore_errors("list_blackout_ranges"), self.engine.connect() as conn:
            _require_item(conn, item_id)
            return list_blackout_ranges(conn, item_id)

    def add_blackout_range(
        self,
        item_id: str,
        caller_id: str,
        start: date,
        end: date,
        reason: Optional[str] = None,
    ) -> BlackoutAddResult:
        """
        Add an inclusive blackout range ``[start, end]`` to an item.

        Existing reservations are never cancelled. Active reservations that
        overlap the new range are returned so the owner can resolve them.

        Raises:
            NotFound: If the item does not exist
            Unauthorized: If ``caller_id`` is not the item's owner
            InvalidRange: If ``end`` is before ``start``
        """
        with datastore_errors("add_blackout_range"), self.engine.begin() as conn:
            item = _require_item(conn, item_id)
            _require_owner(item, caller_id)
            if end < start:
                raise InvalidRange(start, end, "Blackout end date must not precede its start date")

            blackout = insert_blackout_range(conn, item_id, start, end, reason)
            overlapping = [
                r
                for r in list_active_reservations(conn, item_id, window_start=start)
                if r.check_in_date <= end
            ]

        rule_changes.labels(change="blackout_added").inc()
        logger.info(
            "blackout_added",
            item_id=item_id,
            blackout_id=blackout.id,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )
        if overlapping:
            logger.warning(
                "blackout_overlaps_reservations",
                item_id=item_id,
                blackout_id=blackout.id,
                reservation_ids=[r.id for r in overlapping],
            )
        return BlackoutAddResult(blackout=blackout, overlapping_reservations=overlapping)

    def delete_blackout_range(self, blackout_id: str, caller_id: str) -> None:
        """
        Delete a blackout range.

        Raises:
            NotFound: If the range does not exist
            Unauthorized: If ``caller_id`` does not own the range's item
        """
        with datastore_errors("delete_blackout_range"), self.engine.begin() as conn:
            blackout = get_blackout_range(conn, blackout_id)
            if blackout is None:
                raise NotFound("blackout_range", blackout_id)
            item = _require_item(conn, blackout.item_id)
            _require_owner(item, caller_id)
            delete_blackout_range(conn, blackout_id)

        rule_changes.labels(change="blackout_deleted").inc()
        logger.info("blackout_deleted", item_id=blackout.item_id, blackout_id=blackout_id)
