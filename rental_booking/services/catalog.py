"""
Item catalog mirror.

Owner and daily price belong to the listings service. It pushes them here
so ownership checks and pricing read from the local ``items`` table.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.engine import Engine

from rental_booking.db.readers.items import get_item
from rental_booking.db.writers.items import insert_items
from rental_booking.domain import ItemInfo
from rental_booking.errors import NotFound
from rental_booking.services._db import datastore_errors

logger = structlog.get_logger(__name__)


class ItemCatalog:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_item(self, item_id: str) -> ItemInfo:
        """
        Raises:
            NotFound: If the item has never been pushed
        """
        with datastore_errors("get_item"), self.engine.connect() as conn:
            item = get_item(conn, item_id)
        if item is None:
            raise NotFound("item", item_id)
        return item

    def upsert_item(self, item_id: str, owner_id: str, price_per_day: Decimal) -> ItemInfo:
        """
        Create an item or replace its owner and daily price.

        Existing reservations keep the owner and total price they were made with.

        Raises:
            ValueError: If ``price_per_day`` is negative
        """
        if price_per_day < 0:
            raise ValueError("price_per_day must not be negative")

        with datastore_errors("upsert_item"):
            insert_items(
                self.engine,
                [{"id": item_id, "owner_id": owner_id, "price_per_day": price_per_day}],
            )

        item = self.get_item(item_id)
        logger.info(
            "item_catalog_updated",
            item_id=item_id,
            owner_id=owner_id,
            price_per_day=str(item.price_per_day),
        )
        return item
