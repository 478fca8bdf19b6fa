from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy.engine import Engine

from rental_booking.db.writers._upsert import upsert_rows
from rental_booking.models.items import Item
from rental_booking.utils.calendar import utc_now

logger = structlog.get_logger(__name__)


def insert_items(engine: Engine, data: list[dict[str, Any]], dry_run: bool = False) -> None:
    """
    Upsert item owner/price rows mirrored from the listings collaborator.

    Args:
        engine: SQLAlchemy Engine
        data: Dicts with ``id``, ``owner_id`` and ``price_per_day``
        dry_run: If True, skip DB writes and log only
    """
    now = utc_now()
    rows = []
    for item in data:
        item_id = item.get("id")
        owner_id = item.get("owner_id")
        price = item.get("price_per_day")

        if not item_id or not owner_id or price is None:
            logger.warning("item_skipped_missing_fields", item_id=item_id)
            continue
        if Decimal(str(price)) < 0:
            logger.warning("item_skipped_negative_price", item_id=item_id, price=str(price))
            continue

        rows.append(
            {
                "id": str(item_id),
                "owner_id": str(owner_id),
                "price_per_day": Decimal(str(price)),
                "created_at": now,
                "updated_at": now,
            }
        )

    if dry_run:
        logger.info("items_upsert_dry_run", count=len(rows))
        return

    if not rows:
        logger.info("items_upsert_empty")
        return

    with engine.begin() as conn:
        upsert_rows(conn, Item, rows, "id", ["owner_id", "price_per_day"])

    logger.info("items_upserted", count=len(rows))
