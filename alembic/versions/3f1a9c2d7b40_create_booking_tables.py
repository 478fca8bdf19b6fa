"""Create items, availability and reservation tables

Revision ID: 3f1a9c2d7b40
Revises:
Create Date: 2026-10-17 09:12:31.418220

"""

import sqlalchemy as sa

from alembic import op  # type: ignore[attr-defined]
from rental_booking.config import SCHEMA, table_name

# revision identifiers, used by Alembic.
revision = "3f1a9c2d7b40"
down_revision = None
branch_labels = None
depends_on = None

EXCLUSION_CONSTRAINT = "ex_reservations_no_overlap"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "items",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False, index=True),
        sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("price_per_day >= 0", name="ck_items_price_non_negative"),
        schema=SCHEMA,
    )

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "item_id",
            sa.String(64),
            sa.ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint("item_id", "weekday", name="uq_availability_rules_item_weekday"),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        schema=SCHEMA,
    )

    op.create_table(
        "blackout_ranges",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "item_id",
            sa.String(64),
            sa.ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("end_date >= start_date", name="ck_blackout_ranges_order"),
        schema=SCHEMA,
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "item_id",
            sa.String(64),
            sa.ForeignKey(f"{table_name('items')}.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("renter_id", sa.String(64), nullable=False, index=True),
        sa.Column("owner_id", sa.String(64), nullable=False, index=True),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_reference", sa.String(255), nullable=True, unique=True),
        *_timestamps(),
        sa.CheckConstraint("check_out_date > check_in_date", name="ck_reservations_min_one_night"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_reservations_status",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_reservations_item_dates",
        "reservations",
        ["item_id", "check_in_date", "check_out_date"],
        schema=SCHEMA,
    )

    # Two active reservations of one item may never share a night
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            f"ALTER TABLE {table_name('reservations')} "
            f"ADD CONSTRAINT {EXCLUSION_CONSTRAINT} EXCLUDE USING gist ("
            "item_id WITH =, "
            "daterange(check_in_date, check_out_date, '[)') WITH &&"
            ") WHERE (status IN ('pending', 'confirmed'))"
        )


def downgrade() -> None:
    """Downgrade schema."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            f"ALTER TABLE {table_name('reservations')} "
            f"DROP CONSTRAINT IF EXISTS {EXCLUSION_CONSTRAINT}"
        )
    op.drop_index("ix_reservations_item_dates", table_name="reservations", schema=SCHEMA)
    op.drop_table("reservations", schema=SCHEMA)
    op.drop_table("blackout_ranges", schema=SCHEMA)
    op.drop_table("availability_rules", schema=SCHEMA)
    op.drop_table("items", schema=SCHEMA)
