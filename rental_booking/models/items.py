from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String
from sqlalchemy.sql import func

from rental_booking.config import SCHEMA
from rental_booking.models.base import Base


class Item(Base):
    """
    Rentable item as seen by the booking engine.

    Listing metadata (title, images, description) lives with the listings
    collaborator; this table only mirrors what availability and pricing need:
    the owner and the price per day.
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("price_per_day >= 0", name="ck_items_price_non_negative"),
        {"schema": SCHEMA},
    )

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
