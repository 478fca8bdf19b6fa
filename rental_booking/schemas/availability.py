from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from rental_booking.domain import BlackoutRange


class WeekdaysPayload(BaseModel):
    """
    Schema for replacing an item's allowed check-in weekdays.
    An empty list removes the restriction.
    """

    weekdays: list[int] = Field(
        default_factory=list, description="Allowed check-in weekdays, 0 = Sunday ... 6 = Saturday"
    )

    @model_validator(mode="after")
    def check_weekday_bounds(self) -> "WeekdaysPayload":
        invalid = [d for d in self.weekdays if not 0 <= d <= 6]
        if invalid:
            raise ValueError(f"weekdays must be between 0 and 6, got {invalid}")
        return self


class WeekdaysOut(BaseModel):
    item_id: str
    weekdays: list[int]
    restricted: bool


class BlackoutCreatePayload(BaseModel):
    start_date: date = Field(..., description="First unavailable day")
    end_date: date = Field(..., description="Last unavailable day (inclusive)")
    reason: Optional[str] = Field(None, max_length=255, description="Shown to the owner only")


class BlackoutOut(BaseModel):
    id: str
    item_id: str
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @classmethod
    def from_domain(cls, blackout: BlackoutRange) -> "BlackoutOut":
        return cls(
            id=blackout.id,
            item_id=blackout.item_id,
            start_date=blackout.start_date,
            end_date=blackout.end_date,
            reason=blackout.reason,
        )


class CalendarOut(BaseModel):
    item_id: str
    start: date
    end: date
    unavailable_check_in_dates: list[date]
