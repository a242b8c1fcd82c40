"""Holiday and blackout date models."""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class HolidayType(str, Enum):
    """Holiday type."""

    PUBLIC_HOLIDAY = "public_holiday"
    BLACKOUT_DATE = "blackout_date"
    MAINTENANCE = "maintenance"


# Maintenance days are informational and do not close the salon
BLOCKING_HOLIDAY_TYPES = (HolidayType.PUBLIC_HOLIDAY, HolidayType.BLACKOUT_DATE)


class Holiday(BaseModel):
    """Holiday row from the ``holidays`` table."""

    id: Optional[str] = None
    name: str
    date: datetime.date
    type: HolidayType = HolidayType.PUBLIC_HOLIDAY
    is_recurring: bool = False
    recurring_month: Optional[int] = Field(default=None, ge=1, le=12)
    recurring_day: Optional[int] = Field(default=None, ge=1, le=31)
    description: Optional[str] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "name": "Christmas Day",
                "date": "2026-12-25",
                "type": "public_holiday",
                "is_recurring": True,
                "recurring_month": 12,
                "recurring_day": 25,
            }
        }

    def blocks(self, day: datetime.date) -> bool:
        """Whether this holiday closes the business on ``day``."""
        if self.type not in BLOCKING_HOLIDAY_TYPES:
            return False
        if self.date == day:
            return True
        return (
            self.is_recurring
            and self.recurring_month == day.month
            and self.recurring_day == day.day
        )
