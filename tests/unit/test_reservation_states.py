"""
Unit tests for reservation status rules and value types.
"""

from __future__ import annotations

from datetime import date

import pytest
from conftest import make_reservation

from rental_booking.domain import (
    ACTIVE_STATUSES,
    BlackoutRange,
    ReservationStatus,
    can_transition,
)

PENDING = ReservationStatus.PENDING
CONFIRMED = ReservationStatus.CONFIRMED
CANCELLED = ReservationStatus.CANCELLED
COMPLETED = ReservationStatus.COMPLETED


@pytest.mark.unit
@pytest.mark.parametrize(
    "current, target",
    [(PENDING, CONFIRMED), (PENDING, CANCELLED), (CONFIRMED, CANCELLED), (CONFIRMED, COMPLETED)],
)
def test_allowed_transitions(current: ReservationStatus, target: ReservationStatus) -> None:
    assert can_transition(current, target)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current, target",
    [
        (PENDING, COMPLETED),
        (PENDING, PENDING),
        (CONFIRMED, PENDING),
        (CANCELLED, CONFIRMED),
        (CANCELLED, PENDING),
        (COMPLETED, CANCELLED),
        (COMPLETED, CONFIRMED),
    ],
)
def test_forbidden_transitions(current: ReservationStatus, target: ReservationStatus) -> None:
    """Test that no transition skips a state and terminal states stay terminal."""
    assert not can_transition(current, target)


@pytest.mark.unit
def test_only_pending_and_confirmed_are_active() -> None:
    assert ACTIVE_STATUSES == {PENDING, CONFIRMED}
    assert make_reservation(date(2025, 1, 1), date(2025, 1, 2), PENDING).is_active
    assert not make_reservation(date(2025, 1, 1), date(2025, 1, 2), CANCELLED).is_active


@pytest.mark.unit
def test_reservation_occupies_half_open_range() -> None:
    reservation = make_reservation(date(2025, 12, 15), date(2025, 12, 20))

    assert reservation.nights == 5
    assert reservation.occupies(date(2025, 12, 15))
    assert reservation.occupies(date(2025, 12, 19))
    assert not reservation.occupies(date(2025, 12, 20))
    assert not reservation.occupies(date(2025, 12, 14))


@pytest.mark.unit
def test_blackout_contains_both_bounds() -> None:
    blackout = BlackoutRange(
        id="bo-1", item_id="item-1", start_date=date(2025, 7, 1), end_date=date(2025, 7, 3)
    )

    assert blackout.contains(date(2025, 7, 1))
    assert blackout.contains(date(2025, 7, 3))
    assert not blackout.contains(date(2025, 7, 4))
    assert blackout.to_dict()["end_date"] == "2025-07-03"
