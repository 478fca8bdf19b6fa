"""
Error taxonomy for the availability and booking engine.

Every error carries a stable ``kind`` string so callers can branch on it
(the presentation layer shows a "book until X" hint only for
``date_conflict``, and must never tell a user their dates are taken when the
real cause was ``unavailable``). ``to_detail()`` returns the structured
payload sent to clients.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence

if TYPE_CHECKING:
    from rental_booking.domain import Conflict


class BookingError(Exception):
    """Base class for all engine errors."""

    kind = "booking_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidDateFormat(BookingError):
    kind = "invalid_date_format"

    def __init__(self, value: Any) -> None:
        super().__init__(f"Invalid date {value!r}, expected YYYY-MM-DD")
        self.value = value


class InvalidRange(BookingError):
    """Structurally malformed range: end not after start, or window too large."""

    kind = "invalid_range"

    def __init__(self, start: date, end: date, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Check-out {end.isoformat()} must be after check-in {start.isoformat()}"
        )
        self.start = start
        self.end = end

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(start=self.start.isoformat(), end=self.end.isoformat())
        return detail


class IllegalCheckIn(BookingError):
    kind = "illegal_check_in"

    def __init__(self, check_in: date, allowed_weekdays: Iterable[int]) -> None:
        self.check_in = check_in
        self.allowed_weekdays = sorted(set(allowed_weekdays))
        super().__init__(
            f"Check-in on {check_in.isoformat()} is not allowed; "
            f"allowed weekdays are {self.allowed_weekdays}"
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(
            check_in=self.check_in.isoformat(),
            allowed_weekdays=self.allowed_weekdays,
        )
        return detail


class DateConflict(BookingError):
    kind = "date_conflict"

    def __init__(
        self,
        conflicts: Sequence["Conflict"],
        suggested_checkout: Optional[date] = None,
    ) -> None:
        self.conflicts = list(conflicts)
        self.suggested_checkout = suggested_checkout
        kinds = sorted({c.kind for c in self.conflicts})
        message = f"Requested dates conflict with {' and '.join(kinds) or 'another reservation'}"
        if suggested_checkout is not None:
            message += f"; you can book until {suggested_checkout.isoformat()}"
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(
            conflicts=[c.to_dict() for c in self.conflicts],
            suggested_checkout=(
                self.suggested_checkout.isoformat() if self.suggested_checkout else None
            ),
        )
        return detail


class Unauthorized(BookingError):
    kind = "unauthorized"

    def __init__(self, caller_id: str, item_id: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"User {caller_id} is not the owner of item {item_id}")
        self.caller_id = caller_id
        self.item_id = item_id


class NotFound(BookingError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(entity=self.entity, id=str(self.entity_id))
        return detail


class InvalidTransition(BookingError):
    kind = "invalid_transition"

    def __init__(self, reservation_id: Any, current: str, target: str) -> None:
        super().__init__(f"Reservation {reservation_id} cannot move from {current} to {target}")
        self.reservation_id = reservation_id
        self.current = current
        self.target = target

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(current=self.current, target=self.target)
        return detail


class Unavailable(BookingError):
    """Datastore unreachable; transient, callers may retry with backoff."""

    kind = "unavailable"
    retryable = True


class LockTimeout(Unavailable):
    """Timed out waiting for an item's booking critical section."""

    kind = "timeout"

    def __init__(self, item_id: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:.1f}s waiting to book item {item_id}")
        self.item_id = item_id
        self.timeout = timeout


class DuplicatePaymentReference(BookingError):
    """A payment authorization was already used for a different reservation."""

    kind = "duplicate_payment_reference"

    def __init__(self, payment_reference: str, reservation_id: str) -> None:
        super().__init__(
            f"Payment reference {payment_reference} is already attached to "
            f"reservation {reservation_id}"
        )
        self.payment_reference = payment_reference
        self.reservation_id = reservation_id
