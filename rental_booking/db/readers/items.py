from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from rental_booking.domain import ItemInfo
from rental_booking.models.items import Item


def _to_item(row: Any) -> ItemInfo:
    return ItemInfo(
        item_id=row.id,
        owner_id=row.owner_id,
        price_per_day=Decimal(row.price_per_day),
    )


def get_item(conn: Connection, item_id: str) -> Optional[ItemInfo]:
    """
    Fetch owner and price for an item.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        item_id (str): Item ID.

    Returns:
        Optional[ItemInfo]: Item info, or None if the item does not exist.
    """
    row = conn.execute(
        select(Item.id, Item.owner_id, Item.price_per_day).where(Item.id == item_id)
    ).fetchone()
    return _to_item(row) if row else None


def lock_item(conn: Connection, item_id: str) -> Optional[ItemInfo]:
    """
    Fetch an item with a row lock held until the surrounding transaction ends.

    On PostgreSQL this is ``SELECT ... FOR UPDATE`` and serializes booking
    attempts for one item across processes. SQLite ignores the clause and
    relies on its database-wide write lock.

    Args:
        conn (Connection): Connection inside an open transaction.
        item_id (str): Item ID.

    Returns:
        Optional[ItemInfo]: Item info, or None if the item does not exist.
    """
    row = conn.execute(
        select(Item.id, Item.owner_id, Item.price_per_day)
        .where(Item.id == item_id)
        .with_for_update()
    ).fetchone()
    return _to_item(row) if row else None
