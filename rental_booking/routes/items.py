"""
Item catalog routes.

The listings service pushes each item's owner and daily price with HTTP
Basic auth. Until an item has been pushed, every availability and booking
call for it answers 404.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from rental_booking.config import CATALOG_SYNC_PASSWORD, CATALOG_SYNC_USERNAME
from rental_booking.dependencies import get_item_catalog
from rental_booking.errors import BookingError
from rental_booking.routes._helpers import basic_auth_matches, http_error
from rental_booking.schemas.items import ItemOut, ItemUpsertPayload
from rental_booking.services.catalog import ItemCatalog

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.put("/items/{item_id}", response_model=ItemOut)
def upsert_item(
    item_id: str,
    payload: ItemUpsertPayload,
    request: Request,
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> ItemOut:
    """
    Create or update an item's owner and daily price.

    Args:
        item_id: Item ID as known to the listings service
        payload: Owner and daily price

    Returns:
        ItemOut: The stored item
    """
    if not basic_auth_matches(
        request.headers.get("Authorization"), CATALOG_SYNC_USERNAME, CATALOG_SYNC_PASSWORD
    ):
        logger.warning("item_upsert_authentication_failed", item_id=item_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )

    try:
        item = catalog.upsert_item(item_id, payload.owner_id, payload.price_per_day)
        return ItemOut.from_domain(item)
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("upsert_item_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/items/{item_id}", response_model=ItemOut)
def get_item(
    item_id: str,
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> ItemOut:
    try:
        return ItemOut.from_domain(catalog.get_item(item_id))
    except BookingError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("get_item_failed", item_id=item_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
