"""
Business hours and booking limit models.

Rows in ``business_settings`` are untyped JSON values keyed by name. They
are parsed here exactly once, with defaults applied at this boundary, so
rule code only ever sees fully populated, typed values.
"""

from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, model_validator

from models.holiday import Holiday
from utils.constants import (
    SETTING_BOOKING_WINDOW_DAYS,
    SETTING_BUFFER_TIME_MINUTES,
    SETTING_BUSINESS_HOURS,
    SETTING_CANCELLATION_HOURS,
    SETTING_MAX_APPOINTMENTS_PER_DAY,
    SETTING_MIN_ADVANCE_HOURS,
    SETTING_RESCHEDULE_DEADLINE_HOURS,
    WEEKDAY_NAMES,
)


class DayHours(BaseModel):
    """Opening hours for one weekday."""

    open: time
    close: time
    closed: bool = False

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _accept_opening_hours_shape(cls, data: Any) -> Any:
        # The settings page stores {"enabled", "start", "end"}
        if isinstance(data, dict) and "start" in data and "open" not in data:
            return {
                "open": data.get("start"),
                "close": data.get("end"),
                "closed": not data.get("enabled", True),
            }
        return data

    @model_validator(mode="after")
    def _close_after_open(self) -> "DayHours":
        if not self.closed and self.close <= self.open:
            raise ValueError(
                f"close ({self.close:%H:%M}) must be after open ({self.open:%H:%M})"
            )
        return self


def _weekday(open_at: str, close_at: str, closed: bool = False) -> DayHours:
    return DayHours(open=time.fromisoformat(open_at), close=time.fromisoformat(close_at), closed=closed)


class BusinessHours(BaseModel):
    """Weekly opening hours, keyed by lowercase weekday name."""

    monday: DayHours = Field(default_factory=lambda: _weekday("09:00", "18:00"))
    tuesday: DayHours = Field(default_factory=lambda: _weekday("09:00", "18:00"))
    wednesday: DayHours = Field(default_factory=lambda: _weekday("09:00", "18:00"))
    thursday: DayHours = Field(default_factory=lambda: _weekday("09:00", "18:00"))
    friday: DayHours = Field(default_factory=lambda: _weekday("09:00", "18:00"))
    saturday: DayHours = Field(default_factory=lambda: _weekday("09:00", "16:00"))
    sunday: DayHours = Field(default_factory=lambda: _weekday("10:00", "16:00", closed=True))

    class Config:
        frozen = True

    def for_weekday(self, weekday: int) -> DayHours:
        """Hours for a Monday-first weekday index (``date.weekday()``)."""
        return getattr(self, WEEKDAY_NAMES[weekday])

    def for_date(self, day: date) -> DayHours:
        return self.for_weekday(day.weekday())


class BookingLimits(BaseModel):
    """Scalar booking limits."""

    booking_window_days: int = Field(default=30, ge=0)
    buffer_minutes: int = Field(default=15, ge=0)
    min_advance_hours: int = Field(default=24, ge=0)
    max_appointments_per_day: int = Field(default=50, ge=0)
    cancellation_hours: int = Field(default=24, ge=0)
    reschedule_deadline_hours: int = Field(default=2, ge=0)

    class Config:
        frozen = True


class BookingConfiguration(BaseModel):
    """Immutable snapshot of everything the rules need for one call."""

    hours: BusinessHours = Field(default_factory=BusinessHours)
    limits: BookingLimits = Field(default_factory=BookingLimits)
    holidays: List[Holiday] = Field(default_factory=list)

    class Config:
        frozen = True

    def holiday_on(self, day: date) -> Optional[Holiday]:
        """First blocking holiday falling on the given local date."""
        for holiday in self.holidays:
            if holiday.blocks(day):
                return holiday
        return None


_LIMIT_FIELDS = {
    SETTING_BOOKING_WINDOW_DAYS: "booking_window_days",
    SETTING_BUFFER_TIME_MINUTES: "buffer_minutes",
    SETTING_MIN_ADVANCE_HOURS: "min_advance_hours",
    SETTING_MAX_APPOINTMENTS_PER_DAY: "max_appointments_per_day",
    SETTING_CANCELLATION_HOURS: "cancellation_hours",
    SETTING_RESCHEDULE_DEADLINE_HOURS: "reschedule_deadline_hours",
}


def parse_business_settings(
    rows: Iterable[Dict[str, Any]], holidays: Optional[List[Holiday]] = None
) -> BookingConfiguration:
    """
    Build a configuration snapshot from ``business_settings`` rows.

    Missing keys (or null values) take their defaults. Present values that
    fail validation raise ``pydantic.ValidationError``; callers treat that
    as configuration being unavailable rather than falling back.

    Args:
        rows: Iterable of ``{"key": ..., "value": ...}`` dicts
        holidays: Holidays relevant to the call

    Returns:
        Typed configuration snapshot
    """
    values = {row["key"]: row.get("value") for row in rows if row.get("key")}

    raw_hours = values.get(SETTING_BUSINESS_HOURS)
    hours = (
        BusinessHours.model_validate(
            {day: value for day, value in raw_hours.items() if value is not None}
        )
        if raw_hours
        else BusinessHours()
    )

    limit_values = {
        field: values[key]
        for key, field in _LIMIT_FIELDS.items()
        if values.get(key) is not None
    }
    limits = BookingLimits.model_validate(limit_values)

    return BookingConfiguration(hours=hours, limits=limits, holidays=holidays or [])
