"""
Plain value types shared by the resolver, stores and transaction manager.

These are detached from the ORM so the resolver can be fed hand-built
snapshots in tests, and so nothing outside ``db/`` holds a live session
object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that count against availability
ACTIVE_STATUSES: frozenset[ReservationStatus] = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED}
)

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.CANCELLED, ReservationStatus.COMPLETED}
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class ConflictKind(str, Enum):
    BLACKOUT = "blackout"
    BOOKED = "booked"


@dataclass(frozen=True)
class ItemInfo:
    item_id: str
    owner_id: str
    price_per_day: Decimal


@dataclass(frozen=True)
class BlackoutRange:
    """Owner-declared unavailable span; both bounds are inclusive."""

    id: str
    item_id: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ReservationRecord:
    """A reservation row; the date range is half-open ``[check_in, check_out)``."""

    id: str
    item_id: str
    renter_id: str
    owner_id: str
    check_in_date: date
    check_out_date: date
    total_price: Decimal
    status: ReservationStatus
    payment_reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    def occupies(self, day: date) -> bool:
        return self.check_in_date <= day < self.check_out_date


@dataclass(frozen=True)
class Conflict:
    """
    One blackout or reservation overlapping a proposed range.

    ``end_date`` is inclusive for blackouts and exclusive for bookings,
    mirroring how each is stored.
    """

    kind: ConflictKind
    source_id: str
    start_date: date
    end_date: date
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "id": self.source_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "end_inclusive": self.kind is ConflictKind.BLACKOUT,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """
    Everything the resolver needs to judge a proposal for one item.

    A snapshot may be stale when built for advisory UI checks; the booking
    transaction manager always builds a fresh one inside its critical section.
    """

    item_id: str
    owner_id: str
    price_per_day: Decimal
    allowed_weekdays: frozenset[int] = frozenset()
    blackouts: tuple[BlackoutRange, ...] = ()
    reservations: tuple[ReservationRecord, ...] = ()


@dataclass(frozen=True)
class BlackoutAddResult:
    """A newly created blackout plus active reservations it now overlaps."""

    blackout: BlackoutRange
    overlapping_reservations: list[ReservationRecord] = field(default_factory=list)
