"""
Availability routes: allowed check-in weekdays, blackout ranges, calendar and quotes.

Reads are public. Mutations require the caller (X-User-ID) to own the item.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from rental_booking.dependencies import get_current_user_id, get_ledger, get_rule_store
from rental_booking.errors import BookingError
from rental_booking.routes._helpers import bad_request, http_error, parse_date_param
from rental_booking.schemas.availability import (
    BlackoutCreatePayload,
    BlackoutOut,
    CalendarOut,
    WeekdaysOut,
    WeekdaysPayload,
)
from rental_booking.schemas.reservations import (
    BlackoutCreatedOut,
    ProposalPayload,
    QuoteOut,
    ReservationOut,
)
from rental_booking.services.ledger import ReservationLedger
from rental_booking.services.rule_store import AvailabilityRuleStore

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/items/{item_id}/availability", response_model=WeekdaysOut)
def get_allowed_weekdays(
    item_id: str,
    store: AvailabilityRuleStore = Depends(get_rule_store),
) -> WeekdaysOut:
    """
    Get the weekdays on which a stay may start.

    Returns:
        WeekdaysOut: Sorted weekdays; ``restricted`` is False when every day is allowed
    """
    try:
        weekdays = store.get_allowed_weekdays(item_id)
        return WeekdaysOut(item_id=item_id, weekdays=sorted(weekdays), restricted=bool(weekdays))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("get_allowed_weekdays_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/items/{item_id}/availability", response_model=WeekdaysOut)
def set_allowed_weekdays(
    item_id: str,
    payload: WeekdaysPayload,
    caller_id: str = Depends(get_current_user_id),
    store: AvailabilityRuleStore = Depends(get_rule_store),
) -> WeekdaysOut:
    """
    Replace the item's allowed check-in weekdays (owner only).

    Args:
        item_id: Item to configure
        payload: Full new set of weekdays; empty clears the restriction
        caller_id: Authenticated caller
        store: Availability rule store
    """
    try:
        weekdays = store.set_allowed_weekdays(item_id, caller_id, payload.weekdays)
        return WeekdaysOut(item_id=item_id, weekdays=sorted(weekdays), restricted=bool(weekdays))
    except BookingError as e:
        raise http_error(e)
    except ValueError as e:
        raise bad_request(str(e))
    except Exception as e:
        logger.exception("set_allowed_weekdays_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/items/{item_id}/blackouts", response_model=list[BlackoutOut])
def list_blackouts(
    item_id: str,
    store: AvailabilityRuleStore = Depends(get_rule_store),
) -> list[BlackoutOut]:
    try:
        return [BlackoutOut.from_domain(b) for b in store.list_blackout_ranges(item_id)]
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("list_blackouts_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/items/{item_id}/blackouts",
    response_model=BlackoutCreatedOut,
    status_code=status.HTTP_201_CREATED,
)
def add_blackout(
    item_id: str,
    payload: BlackoutCreatePayload,
    caller_id: str = Depends(get_current_user_id),
    store: AvailabilityRuleStore = Depends(get_rule_store),
) -> BlackoutCreatedOut:
    """
    Add a blackout range (owner only).

    Existing reservations are left in place; any active reservation the new
    range overlaps is listed in the response with a warning.
    """
    try:
        result = store.add_blackout_range(
            item_id, caller_id, payload.start_date, payload.end_date, payload.reason
        )
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("add_blackout_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    warnings = [
        f"Reservation {r.id} ({r.check_in_date.isoformat()} to {r.check_out_date.isoformat()}) "
        "overlaps this blackout and was not cancelled"
        for r in result.overlapping_reservations
    ]
    return BlackoutCreatedOut(
        blackout=BlackoutOut.from_domain(result.blackout),
        overlapping_reservations=[
            ReservationOut.from_domain(r) for r in result.overlapping_reservations
        ],
        warnings=warnings,
    )


@router.delete("/blackouts/{blackout_id}", status_code=status.HTTP_200_OK)
def delete_blackout(
    blackout_id: str,
    caller_id: str = Depends(get_current_user_id),
    store: AvailabilityRuleStore = Depends(get_rule_store),
) -> dict[str, str]:
    try:
        store.delete_blackout_range(blackout_id, caller_id)
        return {"message": f"Blackout range {blackout_id} deleted"}
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("delete_blackout_failed", blackout_id=blackout_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/items/{item_id}/reservations", response_model=list[ReservationOut])
def list_active_reservations(
    item_id: str,
    start: Optional[str] = Query(None, description="Window start, YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="Window end (exclusive), YYYY-MM-DD"),
    ledger: ReservationLedger = Depends(get_ledger),
) -> list[ReservationOut]:
    """Pending and confirmed reservations intersecting ``[start, end)``."""
    window_start = parse_date_param(start, "start")
    window_end = parse_date_param(end, "end")
    try:
        reservations = ledger.list_active_reservations(item_id, window_start, window_end)
        return [ReservationOut.from_domain(r) for r in reservations]
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("list_active_reservations_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/items/{item_id}/calendar", response_model=CalendarOut)
def get_calendar(
    item_id: str,
    start: Optional[str] = Query(None, description="First calendar day, YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="Last calendar day (inclusive), YYYY-MM-DD"),
    ledger: ReservationLedger = Depends(get_ledger),
) -> CalendarOut:
    """Dates in ``[start, end]`` that cannot be chosen as a check-in day."""
    window_start = parse_date_param(start, "start")
    window_end = parse_date_param(end, "end")
    try:
        days = ledger.unavailable_check_in_dates(item_id, window_start, window_end)
        return CalendarOut(
            item_id=item_id,
            start=window_start,
            end=window_end,
            unavailable_check_in_dates=days,
        )
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("get_calendar_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/items/{item_id}/quote", response_model=QuoteOut)
def quote(
    item_id: str,
    payload: ProposalPayload,
    ledger: ReservationLedger = Depends(get_ledger),
) -> QuoteOut:
    """
    Advisory check of a proposed stay.

    Always 200 for a well-formed request on an existing item: validation
    failures are reported in ``error`` with their kind and detail. The answer
    is not a hold; the reservation endpoint re-validates authoritatively.
    """
    try:
        result = ledger.quote(item_id, payload.check_in_date, payload.check_out_date)
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("quote_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    if not result.ok:
        return QuoteOut(
            item_id=item_id,
            check_in_date=payload.check_in_date,
            check_out_date=payload.check_out_date,
            available=False,
            error=result.error.to_detail(),
        )
    return QuoteOut(
        item_id=item_id,
        check_in_date=payload.check_in_date,
        check_out_date=payload.check_out_date,
        available=True,
        nights=result.nights,
        total_price=result.total_price,
    )
