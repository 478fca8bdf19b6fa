"""
Integration tests for BookingTransactionManager against a SQLite database.

Covers committing, validation failures, concurrent attempts on one item,
storage-level races, status transitions and payment signals.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any
from unittest.mock import patch

import pytest
from conftest import ITEM_ID, OTHER_ITEM_ID, OTHER_RENTER_ID, OWNER_ID, RENTER_ID
from prometheus_client import REGISTRY
from sqlalchemy import exc
from sqlalchemy.engine import Engine

from rental_booking.db.writers.reservations import insert_reservation
from rental_booking.domain import ReservationRecord, ReservationStatus
from rental_booking.errors import (
    BookingError,
    DateConflict,
    DuplicatePaymentReference,
    IllegalCheckIn,
    InvalidRange,
    InvalidTransition,
    LockTimeout,
    NotFound,
    Unauthorized,
    Unavailable,
)
from rental_booking.services._db import load_snapshot
from rental_booking.services.booking import (
    PAYMENT_FAILED,
    PAYMENT_REFUNDED,
    PAYMENT_SUCCEEDED,
    BookingTransactionManager,
)
from rental_booking.services.ledger import ReservationLedger
from rental_booking.services.rule_store import AvailabilityRuleStore


def _reserve(
    manager: BookingTransactionManager,
    check_in: date,
    check_out: date,
    payment_reference: str,
    renter_id: str = RENTER_ID,
    item_id: str = ITEM_ID,
) -> ReservationRecord:
    return manager.propose_and_reserve(item_id, renter_id, check_in, check_out, payment_reference)


# =============================================================================
# Committing
# =============================================================================


@pytest.mark.integration
def test_reservation_created_pending_with_price(
    manager: BookingTransactionManager, ledger: ReservationLedger
) -> None:
    """Test 3 nights at 50 per day are stored as a pending reservation costing 150."""
    reservation = _reserve(manager, date(2025, 1, 1), date(2025, 1, 4), "pay_price")

    assert reservation.status is ReservationStatus.PENDING
    assert reservation.nights == 3
    assert reservation.total_price == Decimal("150")
    assert reservation.owner_id == OWNER_ID
    assert reservation.renter_id == RENTER_ID
    assert reservation.payment_reference == "pay_price"
    assert ledger.get_reservation(reservation.id) == reservation


@pytest.mark.integration
def test_adjacent_reservations_both_commit(manager: BookingTransactionManager) -> None:
    """Test same-day turnover on both sides of an existing stay."""
    _reserve(manager, date(2025, 12, 15), date(2025, 12, 20), "pay_middle")

    before = _reserve(manager, date(2025, 12, 10), date(2025, 12, 15), "pay_before")
    after = _reserve(manager, date(2025, 12, 20), date(2025, 12, 25), "pay_after")

    assert before.check_out_date == date(2025, 12, 15)
    assert after.check_in_date == date(2025, 12, 20)


@pytest.mark.integration
def test_overlap_rejected_with_suggestion(manager: BookingTransactionManager) -> None:
    existing = _reserve(manager, date(2025, 12, 15), date(2025, 12, 20), "pay_existing")

    with pytest.raises(DateConflict) as exc_info:
        _reserve(manager, date(2025, 12, 10), date(2025, 12, 25), "pay_overlap")

    assert [c.source_id for c in exc_info.value.conflicts] == [existing.id]
    assert exc_info.value.suggested_checkout == date(2025, 12, 15)


@pytest.mark.integration
def test_validation_failures_write_nothing(
    manager: BookingTransactionManager,
    rule_store: AvailabilityRuleStore,
    ledger: ReservationLedger,
) -> None:
    rule_store.set_allowed_weekdays(ITEM_ID, OWNER_ID, [1, 5])
    rule_store.add_blackout_range(ITEM_ID, OWNER_ID, date(2025, 12, 26), date(2025, 12, 31))

    with pytest.raises(IllegalCheckIn):
        _reserve(manager, date(2025, 12, 17), date(2025, 12, 19), "pay_wed")
    with pytest.raises(InvalidRange):
        _reserve(manager, date(2025, 12, 15), date(2025, 12, 15), "pay_zero")
    with pytest.raises(DateConflict) as exc_info:
        _reserve(manager, date(2025, 12, 26), date(2025, 12, 28), "pay_blackout")
    assert exc_info.value.conflicts[0].kind.value == "blackout"

    assert ledger.list_active_reservations(ITEM_ID, date(2025, 12, 1), date(2026, 1, 1)) == []


@pytest.mark.integration
def test_unknown_item(manager: BookingTransactionManager) -> None:
    with pytest.raises(NotFound):
        _reserve(manager, date(2025, 1, 1), date(2025, 1, 2), "pay_x", item_id="missing")


@pytest.mark.integration
def test_payment_reference_required(manager: BookingTransactionManager) -> None:
    with pytest.raises(ValueError):
        _reserve(manager, date(2025, 1, 1), date(2025, 1, 2), "")


@pytest.mark.integration
def test_retry_with_same_payment_reference_is_idempotent(
    manager: BookingTransactionManager,
) -> None:
    first = _reserve(manager, date(2025, 3, 1), date(2025, 3, 3), "pay_retry")
    second = _reserve(manager, date(2025, 3, 1), date(2025, 3, 3), "pay_retry")

    assert second.id == first.id


@pytest.mark.integration
def test_payment_reference_reused_for_other_stay(manager: BookingTransactionManager) -> None:
    first = _reserve(manager, date(2025, 3, 1), date(2025, 3, 3), "pay_reused")

    with pytest.raises(DuplicatePaymentReference) as exc_info:
        _reserve(manager, date(2025, 4, 1), date(2025, 4, 3), "pay_reused")

    assert exc_info.value.reservation_id == first.id


# =============================================================================
# Concurrency
# =============================================================================


@pytest.mark.integration
def test_concurrent_overlapping_proposals_exactly_one_wins(
    manager: BookingTransactionManager, ledger: ReservationLedger
) -> None:
    """Test [06-01, 06-05) and [06-03, 06-07) racing: one commits, one sees the winner."""
    ranges = [
        (date(2025, 6, 1), date(2025, 6, 5), RENTER_ID, "pay_a"),
        (date(2025, 6, 3), date(2025, 6, 7), OTHER_RENTER_ID, "pay_b"),
    ]
    barrier = threading.Barrier(len(ranges))
    results: list[Any] = [None] * len(ranges)

    def attempt(index: int) -> None:
        check_in, check_out, renter_id, reference = ranges[index]
        barrier.wait(5)
        try:
            results[index] = _reserve(manager, check_in, check_out, reference, renter_id)
        except BookingError as e:
            results[index] = e

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(len(ranges))]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    winners = [r for r in results if isinstance(r, ReservationRecord)]
    losers = [r for r in results if isinstance(r, DateConflict)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert [c.source_id for c in losers[0].conflicts] == [winners[0].id]

    active = ledger.list_active_reservations(ITEM_ID, date(2025, 6, 1), date(2025, 6, 8))
    assert [r.id for r in active] == [winners[0].id]


@pytest.mark.integration
def test_many_concurrent_proposals_never_double_book(
    manager: BookingTransactionManager, ledger: ReservationLedger
) -> None:
    attempts = 6
    barrier = threading.Barrier(attempts)
    outcomes: list[Any] = []
    outcomes_lock = threading.Lock()

    def attempt(index: int) -> None:
        barrier.wait(5)
        try:
            outcome: Any = _reserve(
                manager,
                date(2025, 7, 1 + index),
                date(2025, 7, 4 + index),
                f"pay_many_{index}",
                f"renter-{index}",
            )
        except BookingError as e:
            outcome = e
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    assert len(outcomes) == attempts
    assert all(isinstance(o, (ReservationRecord, DateConflict)) for o in outcomes)

    active = ledger.list_active_reservations(ITEM_ID, date(2025, 6, 1), date(2025, 8, 1))
    for earlier, later in zip(active, active[1:]):
        assert earlier.check_out_date <= later.check_in_date


@pytest.mark.integration
def test_different_items_book_in_parallel(manager: BookingTransactionManager) -> None:
    barrier = threading.Barrier(2)
    results: dict[str, Any] = {}

    def attempt(item_id: str) -> None:
        barrier.wait(5)
        results[item_id] = _reserve(
            manager, date(2025, 5, 1), date(2025, 5, 3), f"pay_{item_id}", item_id=item_id
        )

    threads = [threading.Thread(target=attempt, args=(i,)) for i in (ITEM_ID, OTHER_ITEM_ID)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    assert results[ITEM_ID].item_id == ITEM_ID
    assert results[OTHER_ITEM_ID].item_id == OTHER_ITEM_ID
    assert results[OTHER_ITEM_ID].total_price == Decimal("40")


@pytest.mark.integration
def test_busy_item_reports_timeout_not_conflict(db_engine: Engine) -> None:
    manager = BookingTransactionManager(db_engine, lock_timeout=0.05)
    held = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with manager.locks.hold(ITEM_ID, timeout=1.0):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        with pytest.raises(LockTimeout):
            _reserve(manager, date(2025, 1, 1), date(2025, 1, 2), "pay_busy")
    finally:
        release.set()
        thread.join(5)

    # the lock is free again and nothing was written while it was held
    assert _reserve(manager, date(2025, 1, 1), date(2025, 1, 2), "pay_busy").nights == 1


@pytest.mark.integration
def test_storage_level_race_becomes_date_conflict(
    manager: BookingTransactionManager, db_engine: Engine
) -> None:
    """Test an overlap rejected by the database is reported with the winning range."""
    with db_engine.begin() as conn:
        winner = insert_reservation(
            conn,
            item_id=ITEM_ID,
            renter_id=OTHER_RENTER_ID,
            owner_id=OWNER_ID,
            check_in_date=date(2025, 6, 3),
            check_out_date=date(2025, 6, 7),
            total_price=Decimal("200"),
            payment_reference="pay_winner",
        )

    def stale_snapshot(conn: Any, item_id: str, for_update: bool = False) -> Any:
        # The locked read misses the winner, as if it committed right after
        snapshot = load_snapshot(conn, item_id, for_update)
        return replace(snapshot, reservations=()) if for_update else snapshot

    overlap = exc.IntegrityError("INSERT INTO reservations", {}, Exception("overlap"))
    races_before = REGISTRY.get_sample_value("rental_booking_races_total")
    with patch(
        "rental_booking.services.booking.load_snapshot", side_effect=stale_snapshot
    ), patch("rental_booking.services.booking.insert_reservation", side_effect=overlap):
        with pytest.raises(DateConflict) as exc_info:
            _reserve(manager, date(2025, 6, 1), date(2025, 6, 5), "pay_loser")

    assert [c.source_id for c in exc_info.value.conflicts] == [winner.id]
    assert REGISTRY.get_sample_value("rental_booking_races_total") == races_before + 1


@pytest.mark.integration
def test_datastore_failure_is_unavailable(manager: BookingTransactionManager) -> None:
    failure = exc.OperationalError("SELECT", {}, Exception("could not connect to server"))

    with patch("rental_booking.services.booking.load_snapshot", side_effect=failure):
        with pytest.raises(Unavailable) as exc_info:
            _reserve(manager, date(2025, 1, 1), date(2025, 1, 2), "pay_down")

    assert not isinstance(exc_info.value, DateConflict)
    assert exc_info.value.retryable


@pytest.mark.integration
def test_row_missing_after_insert_is_not_found(db_engine: Engine) -> None:
    with patch("rental_booking.db.writers.reservations.get_reservation", return_value=None):
        with db_engine.begin() as conn, pytest.raises(NotFound):
            insert_reservation(
                conn,
                item_id=ITEM_ID,
                renter_id=RENTER_ID,
                owner_id=OWNER_ID,
                check_in_date=date(2025, 3, 1),
                check_out_date=date(2025, 3, 2),
                total_price=Decimal("50"),
                payment_reference="pay_vanished",
            )


@pytest.mark.integration
def test_row_missing_after_transition_is_not_found(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 3, 5), date(2025, 3, 6), "pay_gone")

    with patch(
        "rental_booking.services.booking.get_reservation", side_effect=[reservation, None]
    ), pytest.raises(NotFound):
        manager.confirm_reservation(reservation.id)


# =============================================================================
# Status transitions
# =============================================================================


@pytest.mark.integration
def test_confirm_then_complete(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_flow")

    confirmed = manager.confirm_reservation(reservation.id)
    completed = manager.complete_reservation(reservation.id)

    assert confirmed.status is ReservationStatus.CONFIRMED
    assert completed.status is ReservationStatus.COMPLETED
    with pytest.raises(InvalidTransition):
        manager.cancel_reservation(reservation.id, RENTER_ID)


@pytest.mark.integration
def test_pending_cannot_skip_to_completed(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_skip")

    with pytest.raises(InvalidTransition) as exc_info:
        manager.complete_reservation(reservation.id)

    assert exc_info.value.current == "pending"


@pytest.mark.integration
def test_cancel_frees_dates(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_cancel")

    cancelled = manager.cancel_reservation(reservation.id, OWNER_ID)
    rebooked = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_rebook", OTHER_RENTER_ID)

    assert cancelled.status is ReservationStatus.CANCELLED
    assert rebooked.status is ReservationStatus.PENDING
    with pytest.raises(InvalidTransition):
        manager.confirm_reservation(reservation.id)


@pytest.mark.integration
def test_cancel_requires_a_party(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_party")

    with pytest.raises(Unauthorized):
        manager.cancel_reservation(reservation.id, OTHER_RENTER_ID)

    assert manager.cancel_reservation(reservation.id, RENTER_ID).status.value == "cancelled"


@pytest.mark.integration
def test_transition_unknown_reservation(manager: BookingTransactionManager) -> None:
    with pytest.raises(NotFound):
        manager.confirm_reservation("missing")


# =============================================================================
# Payment signals
# =============================================================================


@pytest.mark.integration
def test_payment_succeeded_confirms_once(manager: BookingTransactionManager) -> None:
    reservation = _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_ok")

    confirmed = manager.apply_payment_signal("pay_ok", PAYMENT_SUCCEEDED)
    redelivered = manager.apply_payment_signal("pay_ok", PAYMENT_SUCCEEDED)

    assert confirmed is not None
    assert confirmed.id == reservation.id
    assert confirmed.status is ReservationStatus.CONFIRMED
    assert redelivered is None


@pytest.mark.integration
def test_payment_failure_and_refund_cancel(manager: BookingTransactionManager) -> None:
    _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_fail")
    _reserve(manager, date(2025, 2, 5), date(2025, 2, 7), "pay_refund")
    manager.apply_payment_signal("pay_refund", PAYMENT_SUCCEEDED)

    failed = manager.apply_payment_signal("pay_fail", PAYMENT_FAILED)
    refunded = manager.apply_payment_signal("pay_refund", PAYMENT_REFUNDED)

    assert failed is not None and failed.status is ReservationStatus.CANCELLED
    assert refunded is not None and refunded.status is ReservationStatus.CANCELLED
    assert manager.apply_payment_signal("pay_refund", PAYMENT_REFUNDED) is None


@pytest.mark.integration
def test_payment_signal_errors(manager: BookingTransactionManager) -> None:
    _reserve(manager, date(2025, 2, 1), date(2025, 2, 3), "pay_known")

    with pytest.raises(NotFound):
        manager.apply_payment_signal("pay_unknown", PAYMENT_SUCCEEDED)
    with pytest.raises(ValueError):
        manager.apply_payment_signal("pay_known", "payment.disputed")
