"""
Reservation routes.

Creating a reservation goes through BookingTransactionManager, which holds the
item's critical section while it re-validates against fresh state. A 409 here
means the dates were taken, a 503 means "try again".
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from rental_booking.dependencies import get_booking_manager, get_current_user_id, get_ledger
from rental_booking.domain import ReservationRecord
from rental_booking.errors import BookingError, Unauthorized
from rental_booking.routes._helpers import bad_request, http_error
from rental_booking.schemas.reservations import ReservationCreatePayload, ReservationOut
from rental_booking.services.booking import BookingTransactionManager
from rental_booking.services.ledger import ReservationLedger

logger = structlog.get_logger(__name__)
router = APIRouter()


def _require_owner(reservation: ReservationRecord, caller_id: str) -> None:
    if caller_id != reservation.owner_id:
        raise Unauthorized(
            caller_id,
            reservation.item_id,
            f"User {caller_id} does not own the item of reservation {reservation.id}",
        )


@router.post("/reservations", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreatePayload,
    renter_id: str = Depends(get_current_user_id),
    manager: BookingTransactionManager = Depends(get_booking_manager),
) -> ReservationOut:
    """
    Reserve an item for ``[check_in_date, check_out_date)``.

    Args:
        payload: Item, dates and the payment authorization token
        renter_id: Authenticated caller, recorded as the renter
        manager: Booking transaction manager

    Returns:
        ReservationOut: The pending reservation
    """
    try:
        reservation = manager.propose_and_reserve(
            item_id=payload.item_id,
            renter_id=renter_id,
            check_in=payload.check_in_date,
            check_out=payload.check_out_date,
            payment_reference=payload.payment_reference,
        )
        return ReservationOut.from_domain(reservation)
    except BookingError as e:
        raise http_error(e)
    except ValueError as e:
        raise bad_request(str(e))
    except Exception as e:
        logger.exception("reservation_creation_failed", item_id=payload.item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
def get_reservation(
    reservation_id: str,
    ledger: ReservationLedger = Depends(get_ledger),
) -> ReservationOut:
    try:
        return ReservationOut.from_domain(ledger.get_reservation(reservation_id))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("get_reservation_failed", reservation_id=reservation_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/reservations/{reservation_id}/confirm", response_model=ReservationOut)
def confirm_reservation(
    reservation_id: str,
    caller_id: str = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
    manager: BookingTransactionManager = Depends(get_booking_manager),
) -> ReservationOut:
    """Owner confirmation of a pending reservation."""
    try:
        _require_owner(ledger.get_reservation(reservation_id), caller_id)
        return ReservationOut.from_domain(manager.confirm_reservation(reservation_id))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("confirm_reservation_failed", reservation_id=reservation_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationOut)
def cancel_reservation(
    reservation_id: str,
    caller_id: str = Depends(get_current_user_id),
    manager: BookingTransactionManager = Depends(get_booking_manager),
) -> ReservationOut:
    """Cancel a pending or confirmed reservation (renter or owner). Frees its dates."""
    try:
        return ReservationOut.from_domain(manager.cancel_reservation(reservation_id, caller_id))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("cancel_reservation_failed", reservation_id=reservation_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/reservations/{reservation_id}/complete", response_model=ReservationOut)
def complete_reservation(
    reservation_id: str,
    caller_id: str = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
    manager: BookingTransactionManager = Depends(get_booking_manager),
) -> ReservationOut:
    try:
        _require_owner(ledger.get_reservation(reservation_id), caller_id)
        return ReservationOut.from_domain(manager.complete_reservation(reservation_id))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("complete_reservation_failed", reservation_id=reservation_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/users/{user_id}/reservations", response_model=list[ReservationOut])
def list_user_reservations(
    user_id: str,
    role: Literal["renter", "owner"] = Query("renter"),
    caller_id: str = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
) -> list[ReservationOut]:
    """
    Reservations where ``user_id`` is the renter or the owner, newest first.

    Users may only list their own reservations.
    """
    if caller_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"kind": "unauthorized", "message": "Cannot list another user's reservations"},
        )
    try:
        if role == "owner":
            reservations = ledger.list_for_owner(user_id)
        else:
            reservations = ledger.list_for_renter(user_id)
        return [ReservationOut.from_domain(r) for r in reservations]
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("list_user_reservations_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/users/{user_id}/pending-count")
def pending_count(
    user_id: str,
    caller_id: str = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
) -> dict[str, int | str]:
    """Number of reservations awaiting confirmation on items owned by ``user_id``."""
    if caller_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"kind": "unauthorized", "message": "Cannot read another user's counts"},
        )
    try:
        return {"user_id": user_id, "pending": ledger.pending_count_for_owner(user_id)}
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("pending_count_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
