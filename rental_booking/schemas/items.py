from decimal import Decimal

from pydantic import BaseModel, Field

from rental_booking.domain import ItemInfo


class ItemUpsertPayload(BaseModel):
    """
    Schema for the listings service pushing an item's owner and daily price.
    Re-sending an item replaces both values.
    """

    owner_id: str = Field(..., min_length=1)
    price_per_day: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class ItemOut(BaseModel):
    item_id: str
    owner_id: str
    price_per_day: Decimal

    @classmethod
    def from_domain(cls, item: ItemInfo) -> "ItemOut":
        return cls(item_id=item.item_id, owner_id=item.owner_id, price_per_day=item.price_per_day)
