from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from rental_booking.domain import ACTIVE_STATUSES, ReservationRecord, ReservationStatus
from rental_booking.models.reservations import Reservation

_ACTIVE_VALUES = sorted(s.value for s in ACTIVE_STATUSES)


def row_to_reservation(row: Any) -> ReservationRecord:
    return ReservationRecord(
        id=row.id,
        item_id=row.item_id,
        renter_id=row.renter_id,
        owner_id=row.owner_id,
        check_in_date=row.check_in_date,
        check_out_date=row.check_out_date,
        total_price=Decimal(row.total_price),
        status=ReservationStatus(row.status),
        payment_reference=row.payment_reference,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def list_active_reservations(
    conn: Connection,
    item_id: str,
    window_start: Optional[date] = None,
    window_end: Optional[date] = None,
) -> list[ReservationRecord]:
    """
    List pending and confirmed reservations for an item, ordered by check-in.

    When a window is given only reservations intersecting the half-open
    ``[window_start, window_end)`` are returned.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        item_id (str): Item ID.
        window_start (Optional[date]): Inclusive window start.
        window_end (Optional[date]): Exclusive window end.

    Returns:
        list[ReservationRecord]: Active reservations.
    """
    stmt = select(Reservation).where(
        Reservation.item_id == item_id,
        Reservation.status.in_(_ACTIVE_VALUES),
    )
    if window_end is not None:
        stmt = stmt.where(Reservation.check_in_date < window_end)
    if window_start is not None:
        stmt = stmt.where(Reservation.check_out_date > window_start)

    result = conn.execute(stmt.order_by(Reservation.check_in_date, Reservation.id))
    return [row_to_reservation(row) for row in result]


def get_reservation(conn: Connection, reservation_id: str) -> Optional[ReservationRecord]:
    row = conn.execute(select(Reservation).where(Reservation.id == reservation_id)).fetchone()
    return row_to_reservation(row) if row else None


def get_reservation_by_payment_reference(
    conn: Connection, payment_reference: str
) -> Optional[ReservationRecord]:
    row = conn.execute(
        select(Reservation).where(Reservation.payment_reference == payment_reference)
    ).fetchone()
    return row_to_reservation(row) if row else None


def list_reservations_for_renter(conn: Connection, renter_id: str) -> list[ReservationRecord]:
    """All reservations made by a renter, newest first."""
    result = conn.execute(
        select(Reservation)
        .where(Reservation.renter_id == renter_id)
        .order_by(Reservation.created_at.desc(), Reservation.check_in_date.desc())
    )
    return [row_to_reservation(row) for row in result]


def list_reservations_for_owner(conn: Connection, owner_id: str) -> list[ReservationRecord]:
    """All reservations on items owned by ``owner_id``, newest first."""
    result = conn.execute(
        select(Reservation)
        .where(Reservation.owner_id == owner_id)
        .order_by(Reservation.created_at.desc(), Reservation.check_in_date.desc())
    )
    return [row_to_reservation(row) for row in result]


def count_pending_for_owner(conn: Connection, owner_id: str) -> int:
    result = conn.execute(
        select(func.count())
        .select_from(Reservation)
        .where(
            Reservation.owner_id == owner_id,
            Reservation.status == ReservationStatus.PENDING.value,
        )
    )
    return int(result.scalar_one())
