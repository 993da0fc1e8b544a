"""
Location calendar schemas.

A location carries a weekly open-hours profile, the buffer lead time and
the per-unit preparation rates used to cost orders.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from models.base import BaseSchema, validate_hhmm


class Weekday(str, Enum):
    """Weekday names, indexed like datetime.weekday()."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return list(cls)[index]


class OpenDay(BaseSchema):
    """Open hours and rush window for one weekday."""

    day: Weekday = Field(..., description="Weekday name")
    is_open: bool = Field(default=True, description="Kitchen open on this day")
    open_time: str = Field(..., description="Opening time HH:MM")
    close_time: str = Field(..., description="Closing time HH:MM (last bookable minute)")
    rush_start: str = Field(..., description="Rush hour start HH:MM (inclusive)")
    rush_end: str = Field(..., description="Rush hour end HH:MM (exclusive)")

    @field_validator("open_time", "close_time", "rush_start", "rush_end")
    @classmethod
    def check_time(cls, v: str) -> str:
        return validate_hhmm(v)

    @model_validator(mode="after")
    def check_order(self) -> "OpenDay":
        if self.close_time < self.open_time:
            raise ValueError("close_time must not be before open_time")
        return self


class LocationBase(BaseSchema):
    """Shared location fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    address: Optional[str] = Field(None, max_length=255, description="Address / opening hours text")
    buffer_minutes: Optional[int] = Field(
        None,
        ge=0,
        le=240,
        description="Lead minutes before the earliest bookable slot (unset or 0 uses the settings default)"
    )
    regular_prep_seconds: Optional[int] = Field(
        None,
        ge=0,
        le=3600,
        description="Prep seconds per unit outside rush hour"
    )
    rush_prep_seconds: Optional[int] = Field(
        None,
        ge=0,
        le=3600,
        description="Prep seconds per unit during rush hour"
    )
    active: bool = Field(default=True, description="Location accepts orders")
    open_days: List[OpenDay] = Field(default_factory=list, description="Weekly profile")

    @field_validator("open_days")
    @classmethod
    def unique_days(cls, v: List[OpenDay]) -> List[OpenDay]:
        seen = [d.day for d in v]
        if len(seen) != len(set(seen)):
            raise ValueError("open_days must list each weekday at most once")
        return v


class Location(LocationBase):
    """Location as stored and returned by the calendar."""

    id: str = Field(..., description="Location id")

    def day_config(self, weekday: Weekday) -> Optional[OpenDay]:
        """Open-day entry for a weekday, if configured."""
        for day in self.open_days:
            if day.day == weekday:
                return day
        return None


class LocationListResponse(BaseSchema):
    """List of locations."""

    data: List[Location]
    total: int


DEFAULT_OPEN_DAYS = [
    {"day": "Monday", "is_open": True, "open_time": "11:00", "close_time": "19:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Tuesday", "is_open": True, "open_time": "11:00", "close_time": "19:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Wednesday", "is_open": True, "open_time": "11:00", "close_time": "19:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Thursday", "is_open": True, "open_time": "11:00", "close_time": "19:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Friday", "is_open": True, "open_time": "11:00", "close_time": "19:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Saturday", "is_open": True, "open_time": "11:00", "close_time": "15:00", "rush_start": "12:00", "rush_end": "13:00"},
    {"day": "Sunday", "is_open": False, "open_time": "11:00", "close_time": "15:00", "rush_start": "12:00", "rush_end": "13:00"},
]

DEFAULT_LOCATION = {
    "id": "loc-1",
    "name": "Neusiedl am See",
    "address": "Mo-Fr: 11-19 | Sa: 11-15",
    "buffer_minutes": 8,
    "regular_prep_seconds": 60,
    "rush_prep_seconds": 90,
    "active": True,
    "open_days": DEFAULT_OPEN_DAYS,
}
