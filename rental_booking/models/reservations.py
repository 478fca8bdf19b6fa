import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.sql import func

from rental_booking.config import SCHEMA, table_name
from rental_booking.models.base import Base


class Reservation(Base):
    """
    ORM model for item reservations.

    The stay is the half-open range ``[check_in_date, check_out_date)``.
    ``owner_id`` is copied from the item at creation so owner-side queries
    do not need a join. On PostgreSQL the migration adds an exclusion
    constraint so two pending/confirmed reservations for the same item can
    never overlap, even if application-level locking is bypassed.
    """

    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_reservations_min_one_night"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_reservations_status",
        ),
        Index("ix_reservations_item_dates", "item_id", "check_in_date", "check_out_date"),
        {"schema": SCHEMA},
    )

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_id = Column(
        String(64),
        ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
        nullable=False,
    )
    renter_id = Column(String(64), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    payment_reference = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
