"""
Booking transaction manager.

The only component allowed to create reservations or change their status.

A booking attempt runs one critical section per item:

1. take the item's in-process lock (bounded wait, LockTimeout on expiry)
2. open a transaction and read a fresh snapshot, locking the item row
   (``SELECT ... FOR UPDATE`` on PostgreSQL, so other processes queue too)
3. validate the proposal against that snapshot
4. insert the pending reservation and commit

If an overlapping reservation still reaches the database (another process
without the row lock, manual writes), the PostgreSQL exclusion constraint
rejects the insert; the resulting IntegrityError is reported as a
DateConflict built from a re-read of the ledger.

Validation failures are deterministic and never retried here. Retrying after
a conflict or an outage is the caller's decision.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Optional

import structlog
from sqlalchemy import exc
from sqlalchemy.engine import Engine

from rental_booking.config import BOOKING_LOCK_TIMEOUT_SECONDS
from rental_booking.db.readers.reservations import (
    get_reservation,
    get_reservation_by_payment_reference,
)
from rental_booking.db.writers.reservations import insert_reservation, update_reservation_status
from rental_booking.domain import (
    ACTIVE_STATUSES,
    ReservationRecord,
    ReservationStatus,
    can_transition,
)
from rental_booking.errors import (
    BookingError,
    DateConflict,
    DuplicatePaymentReference,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from rental_booking.metrics import (
    booking_attempts,
    booking_duration_seconds,
    booking_races,
    status_transitions,
)
from rental_booking.services._db import datastore_errors, load_snapshot
from rental_booking.services.locks import ItemLockRegistry
from rental_booking.services.resolver import (
    find_conflicts,
    suggest_alternate_checkout,
    validate_against_snapshot,
)

logger = structlog.get_logger(__name__)

PAYMENT_SUCCEEDED = "payment.succeeded"
PAYMENT_FAILED = "payment.failed"
PAYMENT_REFUNDED = "payment.refunded"


def _same_request(
    existing: ReservationRecord,
    item_id: str,
    renter_id: str,
    check_in: date,
    check_out: date,
) -> bool:
    return (
        existing.item_id == item_id
        and existing.renter_id == renter_id
        and existing.check_in_date == check_in
        and existing.check_out_date == check_out
    )


class BookingTransactionManager:
    """
    Commits reservations without double-booking and drives their status.

    Args:
        engine: SQLAlchemy engine for the reservation ledger
        locks: Per-item lock registry; share one instance per process
        lock_timeout: Seconds to wait for an item's critical section
    """

    def __init__(
        self,
        engine: Engine,
        locks: Optional[ItemLockRegistry] = None,
        lock_timeout: float = BOOKING_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self.engine = engine
        self.locks = locks or ItemLockRegistry()
        self.lock_timeout = lock_timeout

    def propose_and_reserve(
        self,
        item_id: str,
        renter_id: str,
        check_in: date,
        check_out: date,
        payment_reference: str,
    ) -> ReservationRecord:
        """
        Validate a proposed stay against fresh state and commit it as pending.

        Args:
            item_id: Item to reserve
            renter_id: Renter making the reservation
            check_in: First day of the stay
            check_out: Day the item is returned (not part of the stay)
            payment_reference: Token of a successful payment authorization

        Returns:
            ReservationRecord: The new pending reservation. A retried request
            carrying the same payment reference and the same stay returns the
            reservation created the first time.

        Raises:
            ValueError: If ``payment_reference`` is empty
            InvalidRange: If ``check_out`` is not after ``check_in``
            IllegalCheckIn: If the check-in weekday is not allowed
            DateConflict: If the stay overlaps a blackout or an active reservation
            DuplicatePaymentReference: If the payment reference belongs to another stay
            NotFound: If the item does not exist
            LockTimeout: If the item's critical section stayed busy too long
            Unavailable: If the datastore is unreachable
        """
        if not payment_reference:
            raise ValueError("payment_reference is required before reserving")

        log = logger.bind(
            item_id=item_id,
            renter_id=renter_id,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
        )

        try:
            with self.locks.hold(item_id, self.lock_timeout):
                started = time.monotonic()
                try:
                    reservation = self._reserve_locked(
                        item_id, renter_id, check_in, check_out, payment_reference
                    )
                finally:
                    booking_duration_seconds.observe(time.monotonic() - started)
        except BookingError as e:
            booking_attempts.labels(outcome=e.kind).inc()
            log.info("booking_rejected", kind=e.kind, reason=e.message)
            raise

        booking_attempts.labels(outcome="committed").inc()
        log.info(
            "booking_committed",
            reservation_id=reservation.id,
            nights=reservation.nights,
            total_price=str(reservation.total_price),
        )
        return reservation

    def _reserve_locked(
        self,
        item_id: str,
        renter_id: str,
        check_in: date,
        check_out: date,
        payment_reference: str,
    ) -> ReservationRecord:
        try:
            with datastore_errors("propose_and_reserve"), self.engine.begin() as conn:
                existing = get_reservation_by_payment_reference(conn, payment_reference)
                if existing is not None:
                    if _same_request(existing, item_id, renter_id, check_in, check_out):
                        return existing
                    raise DuplicatePaymentReference(payment_reference, existing.id)

                snapshot = load_snapshot(conn, item_id, for_update=True)
                result = validate_against_snapshot(snapshot, check_in, check_out)
                result.raise_for_error()

                return insert_reservation(
                    conn,
                    item_id=item_id,
                    renter_id=renter_id,
                    owner_id=snapshot.owner_id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    total_price=result.total_price,
                    payment_reference=payment_reference,
                )
        except exc.IntegrityError as e:
            raise self._explain_integrity_error(
                e, item_id, renter_id, check_in, check_out, payment_reference
            ) from e

    def _explain_integrity_error(
        self,
        error: exc.IntegrityError,
        item_id: str,
        renter_id: str,
        check_in: date,
        check_out: date,
        payment_reference: str,
    ) -> BookingError:
        """Re-read the ledger to turn a storage-level rejection into a domain error."""
        with datastore_errors("propose_and_reserve_recheck"), self.engine.connect() as conn:
            existing = get_reservation_by_payment_reference(conn, payment_reference)
            if existing is not None and not _same_request(
                existing, item_id, renter_id, check_in, check_out
            ):
                return DuplicatePaymentReference(payment_reference, existing.id)
            snapshot = load_snapshot(conn, item_id)

        booking_races.inc()
        conflicts = find_conflicts(check_in, check_out, (), snapshot.reservations)
        logger.warning(
            "booking_race_detected",
            item_id=item_id,
            conflicting_ids=[c.source_id for c in conflicts],
            error=str(error.orig),
        )
        return DateConflict(conflicts, suggest_alternate_checkout(check_in, snapshot.reservations))

    def confirm_reservation(self, reservation_id: str) -> ReservationRecord:
        """
        Move a pending reservation to confirmed (payment or owner confirmation).

        Raises:
            NotFound: If the reservation does not exist
            InvalidTransition: If it is not pending
        """
        return self._transition(reservation_id, ReservationStatus.CONFIRMED)

    def cancel_reservation(self, reservation_id: str, caller_id: str) -> ReservationRecord:
        """
        Cancel a pending or confirmed reservation on behalf of its renter or owner.

        Raises:
            NotFound: If the reservation does not exist
            Unauthorized: If ``caller_id`` is neither the renter nor the owner
            InvalidTransition: If it is already cancelled or completed
        """
        return self._transition(reservation_id, ReservationStatus.CANCELLED, caller_id=caller_id)

    def complete_reservation(self, reservation_id: str) -> ReservationRecord:
        """Mark a confirmed reservation completed after checkout and handover."""
        return self._transition(reservation_id, ReservationStatus.COMPLETED)

    def _transition(
        self,
        reservation_id: str,
        target: ReservationStatus,
        caller_id: Optional[str] = None,
    ) -> ReservationRecord:
        with datastore_errors(f"transition_{target.value}"), self.engine.begin() as conn:
            reservation = get_reservation(conn, reservation_id)
            if reservation is None:
                raise NotFound("reservation", reservation_id)

            if caller_id is not None and caller_id not in (
                reservation.renter_id,
                reservation.owner_id,
            ):
                raise Unauthorized(
                    caller_id,
                    reservation.item_id,
                    f"User {caller_id} is not a party to reservation {reservation_id}",
                )

            current = reservation.status
            if not can_transition(current, target):
                raise InvalidTransition(reservation_id, current.value, target.value)

            if not update_reservation_status(conn, reservation_id, current, target):
                # Status changed between the read and the compare-and-set
                fresh = get_reservation(conn, reservation_id)
                raise InvalidTransition(
                    reservation_id, fresh.status.value if fresh else current.value, target.value
                )

            updated = get_reservation(conn, reservation_id)
            if updated is None:
                raise NotFound("reservation", reservation_id)

        status_transitions.labels(from_status=current.value, to_status=target.value).inc()
        logger.info(
            "reservation_status_changed",
            reservation_id=reservation_id,
            item_id=reservation.item_id,
            from_status=current.value,
            to_status=target.value,
            caller_id=caller_id,
        )
        return updated

    def apply_payment_signal(
        self, payment_reference: str, event: str
    ) -> Optional[ReservationRecord]:
        """
        Apply an asynchronous payment event to the reservation holding ``payment_reference``.

        ``payment.succeeded`` confirms a pending reservation. ``payment.failed``
        and ``payment.refunded`` cancel an active one. Redelivered or late
        events for reservations that already moved on are ignored.

        Returns:
            Optional[ReservationRecord]: The updated reservation, or None when
            the event did not change anything.

        Raises:
            NotFound: If no reservation carries ``payment_reference``
            ValueError: If ``event`` is not a supported payment event
        """
        if event not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED, PAYMENT_REFUNDED):
            raise ValueError(f"Unsupported payment event {event!r}")

        with datastore_errors("apply_payment_signal"), self.engine.connect() as conn:
            reservation = get_reservation_by_payment_reference(conn, payment_reference)
        if reservation is None:
            raise NotFound("reservation for payment", payment_reference)

        if event == PAYMENT_SUCCEEDED:
            if reservation.status is not ReservationStatus.PENDING:
                logger.info(
                    "payment_signal_ignored",
                    reservation_id=reservation.id,
                    payment_event=event,
                    status=reservation.status.value,
                )
                return None
            return self._transition(reservation.id, ReservationStatus.CONFIRMED)

        if reservation.status not in ACTIVE_STATUSES:
            logger.info(
                "payment_signal_ignored",
                reservation_id=reservation.id,
                payment_event=event,
                status=reservation.status.value,
            )
            return None
        return self._transition(reservation.id, ReservationStatus.CANCELLED)
