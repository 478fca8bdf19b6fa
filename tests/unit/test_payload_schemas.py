"""
Unit tests for request payload validation.
"""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from rental_booking.schemas.availability import BlackoutCreatePayload, WeekdaysPayload
from rental_booking.schemas.reservations import ReservationCreatePayload


@pytest.mark.unit
def test_weekdays_payload_accepts_full_range() -> None:
    assert WeekdaysPayload(weekdays=[0, 6]).weekdays == [0, 6]
    assert WeekdaysPayload().weekdays == []


@pytest.mark.unit
@pytest.mark.parametrize("weekdays", [[7], [-1], [1, 8]])
def test_weekdays_payload_rejects_out_of_range(weekdays: list[int]) -> None:
    with pytest.raises(ValidationError) as exc_info:
        WeekdaysPayload(weekdays=weekdays)

    assert "between 0 and 6" in str(exc_info.value)


@pytest.mark.unit
def test_reservation_payload_parses_iso_dates() -> None:
    payload = ReservationCreatePayload(
        item_id="item-1",
        check_in_date="2025-12-15",
        check_out_date="2025-12-20",
        payment_reference="pay_123",
    )

    assert payload.check_in_date == date(2025, 12, 15)
    assert payload.check_out_date == date(2025, 12, 20)


@pytest.mark.unit
def test_reservation_payload_requires_payment_reference() -> None:
    with pytest.raises(ValidationError):
        ReservationCreatePayload(
            item_id="item-1",
            check_in_date="2025-12-15",
            check_out_date="2025-12-20",
            payment_reference="",
        )


@pytest.mark.unit
def test_blackout_payload_reason_is_optional() -> None:
    payload = BlackoutCreatePayload(start_date="2025-07-01", end_date="2025-07-03")

    assert payload.reason is None
    assert payload.end_date == date(2025, 7, 3)
