import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from rental_booking.config import SCHEMA, table_name
from rental_booking.models.base import Base


class AvailabilityRule(Base):
    """
    One allowed check-in weekday for an item (0 = Sunday ... 6 = Saturday).

    An item with no rows has no restriction. Rows are replaced as a set by
    the owner, never edited individually.
    """

    __tablename__ = "availability_rules"
    __table_args__ = (
        UniqueConstraint("item_id", "weekday", name="uq_availability_rules_item_weekday"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        {"schema": SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(
        String(64),
        ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    weekday = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class BlackoutRangeRow(Base):
    """Owner-declared span (inclusive bounds) when the item cannot be rented."""

    __tablename__ = "blackout_ranges"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_blackout_ranges_order"),
        {"schema": SCHEMA},
    )

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_id = Column(
        String(64),
        ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
