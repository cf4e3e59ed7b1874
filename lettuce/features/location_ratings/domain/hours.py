"""
Weekly operating hours for a store and the open-now check.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from lettuce.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-4]):[0-5][0-9]$")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Abbreviations zoneinfo may accept but which aren't region-based IANA names
_AMBIGUOUS_ZONES = {"EST", "PST", "CST", "MST", "EDT", "PDT", "CDT", "MDT"}
END_OF_DAY = "24:00"
MIDNIGHT = "00:00"


def time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def is_valid_time_range(open_time: str, close_time: str) -> bool:
    """Close must follow open, except end-of-day and past-midnight closes."""
    if close_time == END_OF_DAY:
        return True

    open_minutes = time_to_minutes(open_time)
    close_minutes = time_to_minutes(close_time)

    if close_time == MIDNIGHT and open_minutes > 0:
        return True

    return close_minutes > open_minutes


def resolve_timezone(name: str | None) -> tzinfo:
    """ZoneInfo for ``name``, falling back to UTC for unknown zones."""
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown store timezone, falling back to UTC", timezone=name)
        return UTC


class DayHours(BaseModel):
    """Opening window for one weekday, or a closed day."""

    model_config = ConfigDict(frozen=True)

    open: str | None = None
    close: str | None = None
    closed: bool = False

    @model_validator(mode="after")
    def check_window(self) -> DayHours:
        if self.closed:
            return self
        if self.open is None or self.close is None:
            raise ValueError("open and close are required unless the day is closed")
        for value in (self.open, self.close):
            if not TIME_PATTERN.match(value):
                raise ValueError(f"invalid time {value!r}, expected HH:MM")
        if self.open == END_OF_DAY:
            raise ValueError("open cannot be 24:00")
        if not is_valid_time_range(self.open, self.close):
            raise ValueError(f"close {self.close} must be after open {self.open}")
        return self


class StoreHours(BaseModel):
    """Seven day entries plus the store's IANA timezone."""

    model_config = ConfigDict(frozen=True)

    monday: DayHours
    tuesday: DayHours
    wednesday: DayHours
    thursday: DayHours
    friday: DayHours
    saturday: DayHours
    sunday: DayHours
    timezone: str

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        if not value or value.upper() in _AMBIGUOUS_ZONES:
            raise ValueError(f"timezone {value!r} is not an IANA zone name")
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {value!r}") from e
        return value

    def for_day(self, weekday: int) -> DayHours:
        """Entry for ``datetime.weekday()`` (0 = Monday)."""
        return getattr(self, WEEKDAYS[weekday])

    @property
    def tz(self) -> tzinfo:
        return resolve_timezone(self.timezone)


def is_store_open(hours: StoreHours, now: datetime | None = None) -> bool:
    """Whether the store is open at ``now`` in its own timezone."""
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    local = now.astimezone(hours.tz)
    day = hours.for_day(local.weekday())
    if day.closed:
        return False

    current = local.hour * 60 + local.minute
    open_minutes = time_to_minutes(day.open)
    close_minutes = 24 * 60 if day.close == END_OF_DAY else time_to_minutes(day.close)

    if close_minutes <= open_minutes:
        # Overnight window, e.g. 22:00 - 00:00
        return current >= open_minutes or current < close_minutes

    return open_minutes <= current < close_minutes
