"""
Availability resolver.

Pure functions over an availability snapshot: no database access, no clock,
no logging. Given the same inputs they always return the same answer, which
is what lets the advisory UI check and the authoritative booking check share
one implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AbstractSet, Iterable, Optional, Sequence

from rental_booking.domain import (
    AvailabilitySnapshot,
    BlackoutRange,
    Conflict,
    ConflictKind,
    ReservationRecord,
)
from rental_booking.errors import BookingError, DateConflict, IllegalCheckIn, InvalidRange
from rental_booking.utils.calendar import days_between, iter_days_through, ranges_overlap, weekday


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a proposed range.

    Exactly one of ``error`` or the priced fields is meaningful: on success
    ``nights`` and ``total_price`` are set and ``error`` is None.
    """

    check_in: date
    check_out: date
    nights: int = 0
    total_price: Decimal = Decimal("0")
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> "ValidationResult":
        if self.error is not None:
            raise self.error
        return self


def _active(reservations: Iterable[ReservationRecord]) -> list[ReservationRecord]:
    return [r for r in reservations if r.is_active]


def is_legal_check_in(day: date, allowed_weekdays: AbstractSet[int]) -> bool:
    """True when no weekday restriction is set or ``day`` falls on an allowed weekday."""
    return not allowed_weekdays or weekday(day) in allowed_weekdays


def is_date_blocked(
    day: date,
    blackouts: Sequence[BlackoutRange],
    reservations: Sequence[ReservationRecord],
) -> bool:
    if any(b.contains(day) for b in blackouts):
        return True
    return any(r.occupies(day) for r in _active(reservations))


def find_conflicts(
    proposed_start: date,
    proposed_end: date,
    blackouts: Sequence[BlackoutRange],
    reservations: Sequence[ReservationRecord],
) -> list[Conflict]:
    """
    Every blackout and active reservation overlapping ``[proposed_start, proposed_end)``.

    Blackouts come first (ordered by start date), then bookings (ordered by
    check-in). Blackout bounds are inclusive, so a blackout ending on the day
    before ``proposed_start`` does not conflict.
    """
    conflicts: list[Conflict] = []

    for b in sorted(blackouts, key=lambda b: (b.start_date, b.end_date)):
        if b.start_date < proposed_end and proposed_start <= b.end_date:
            conflicts.append(
                Conflict(
                    kind=ConflictKind.BLACKOUT,
                    source_id=b.id,
                    start_date=b.start_date,
                    end_date=b.end_date,
                    reason=b.reason,
                )
            )

    for r in sorted(_active(reservations), key=lambda r: (r.check_in_date, r.check_out_date)):
        if ranges_overlap(proposed_start, proposed_end, r.check_in_date, r.check_out_date):
            conflicts.append(
                Conflict(
                    kind=ConflictKind.BOOKED,
                    source_id=r.id,
                    start_date=r.check_in_date,
                    end_date=r.check_out_date,
                )
            )

    return conflicts


def suggest_alternate_checkout(
    proposed_start: date,
    reservations: Sequence[ReservationRecord],
) -> Optional[date]:
    """
    Latest safe check-out before the next booking that starts after ``proposed_start``.

    Returns the earliest later check-in, or None when nothing is booked after
    ``proposed_start``. Blackouts are not considered; callers re-validate.
    """
    later = [r.check_in_date for r in _active(reservations) if r.check_in_date > proposed_start]
    return min(later) if later else None


def validate_proposal(
    proposed_start: date,
    proposed_end: date,
    allowed_weekdays: AbstractSet[int],
    blackouts: Sequence[BlackoutRange],
    reservations: Sequence[ReservationRecord],
    price_per_day: Decimal,
) -> ValidationResult:
    """
    Decide whether ``[proposed_start, proposed_end)`` may become a reservation.

    Checks run in order (range shape, check-in weekday, conflicts) and the
    first failure wins. Adjacent ranges are legal: ending on an existing
    check-in or starting on an existing check-out is not a conflict.

    Returns:
        ValidationResult: priced on success, carrying InvalidRange,
        IllegalCheckIn or DateConflict otherwise
    """
    if proposed_end <= proposed_start:
        return ValidationResult(
            proposed_start, proposed_end, error=InvalidRange(proposed_start, proposed_end)
        )

    if not is_legal_check_in(proposed_start, allowed_weekdays):
        return ValidationResult(
            proposed_start,
            proposed_end,
            error=IllegalCheckIn(proposed_start, allowed_weekdays),
        )

    conflicts = find_conflicts(proposed_start, proposed_end, blackouts, reservations)
    if conflicts:
        suggested = None
        if any(c.kind is ConflictKind.BOOKED for c in conflicts):
            suggested = suggest_alternate_checkout(proposed_start, reservations)
        return ValidationResult(
            proposed_start, proposed_end, error=DateConflict(conflicts, suggested)
        )

    nights = days_between(proposed_start, proposed_end)
    return ValidationResult(
        proposed_start,
        proposed_end,
        nights=nights,
        total_price=Decimal(nights) * Decimal(price_per_day),
    )


def validate_against_snapshot(
    snapshot: AvailabilitySnapshot, proposed_start: date, proposed_end: date
) -> ValidationResult:
    return validate_proposal(
        proposed_start,
        proposed_end,
        snapshot.allowed_weekdays,
        snapshot.blackouts,
        snapshot.reservations,
        snapshot.price_per_day,
    )


def unavailable_check_in_dates(
    window_start: date,
    window_end: date,
    allowed_weekdays: AbstractSet[int],
    blackouts: Sequence[BlackoutRange],
    reservations: Sequence[ReservationRecord],
) -> list[date]:
    """
    Dates in the inclusive window ``[window_start, window_end]`` that cannot start a stay.

    A date is unavailable for check-in when its weekday is not allowed, it
    lies in a blackout, or an active reservation occupies it. Used to gray
    out calendar cells; check-out dates have no weekday restriction.
    """
    if window_end < window_start:
        raise InvalidRange(window_start, window_end, "Calendar window end precedes its start")

    return [
        day
        for day in iter_days_through(window_start, window_end)
        if not is_legal_check_in(day, allowed_weekdays)
        or is_date_blocked(day, blackouts, reservations)
    ]
