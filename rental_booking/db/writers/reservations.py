import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from rental_booking.db.readers.reservations import get_reservation
from rental_booking.domain import ReservationRecord, ReservationStatus
from rental_booking.errors import NotFound
from rental_booking.models.reservations import Reservation
from rental_booking.utils.calendar import utc_now


def insert_reservation(
    conn: Connection,
    *,
    item_id: str,
    renter_id: str,
    owner_id: str,
    check_in_date: date,
    check_out_date: date,
    total_price: Decimal,
    payment_reference: Optional[str],
) -> ReservationRecord:
    """
    Insert a new pending reservation.

    The caller is responsible for having validated the range inside the
    item's critical section. On PostgreSQL an overlapping insert that slips
    past that raises IntegrityError from the exclusion constraint.

    Returns:
        ReservationRecord: The created reservation.
    """
    reservation_id = str(uuid.uuid4())
    now = utc_now()
    conn.execute(
        insert(Reservation).values(
            id=reservation_id,
            item_id=item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            total_price=total_price,
            status=ReservationStatus.PENDING.value,
            payment_reference=payment_reference,
            created_at=now,
            updated_at=now,
        )
    )
    created = get_reservation(conn, reservation_id)
    if created is None:
        raise NotFound("reservation", reservation_id)
    return created


def update_reservation_status(
    conn: Connection,
    reservation_id: str,
    current: ReservationStatus,
    target: ReservationStatus,
) -> bool:
    """
    Move a reservation from ``current`` to ``target`` if it is still ``current``.

    The status predicate makes the transition a compare-and-set, so two
    concurrent transitions cannot both apply.

    Returns:
        bool: True if the row was updated.
    """
    result = conn.execute(
        update(Reservation)
        .where(Reservation.id == reservation_id, Reservation.status == current.value)
        .values(status=target.value, updated_at=utc_now())
    )
    return result.rowcount == 1
