from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from rental_booking.domain import ReservationRecord
from rental_booking.schemas.availability import BlackoutOut


class ProposalPayload(BaseModel):
    check_in_date: date = Field(..., description="First day of the stay")
    check_out_date: date = Field(..., description="Return day, free for the next renter")


class ReservationCreatePayload(ProposalPayload):
    """
    Schema for creating a reservation. Payment must already be authorized;
    the resulting token is passed as payment_reference.
    """

    item_id: str = Field(..., min_length=1)
    payment_reference: str = Field(..., min_length=1, description="Payment authorization token")


class QuoteOut(BaseModel):
    item_id: str
    check_in_date: date
    check_out_date: date
    available: bool
    nights: Optional[int] = None
    total_price: Optional[Decimal] = None
    error: Optional[dict] = None


class ReservationOut(BaseModel):
    id: str
    item_id: str
    renter_id: str
    owner_id: str
    check_in_date: date
    check_out_date: date
    nights: int
    total_price: Decimal
    status: str
    payment_reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, reservation: ReservationRecord) -> "ReservationOut":
        return cls(
            id=reservation.id,
            item_id=reservation.item_id,
            renter_id=reservation.renter_id,
            owner_id=reservation.owner_id,
            check_in_date=reservation.check_in_date,
            check_out_date=reservation.check_out_date,
            nights=reservation.nights,
            total_price=reservation.total_price,
            status=reservation.status.value,
            payment_reference=reservation.payment_reference,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class BlackoutCreatedOut(BaseModel):
    """A created blackout plus the active reservations it overlaps (left untouched)."""

    blackout: BlackoutOut
    overlapping_reservations: list[ReservationOut]
    warnings: list[str]


class PaymentWebhookPayload(BaseModel):
    event: str = Field(..., description="payment.succeeded | payment.failed | payment.refunded")
    payment_reference: str = Field(..., min_length=1)
