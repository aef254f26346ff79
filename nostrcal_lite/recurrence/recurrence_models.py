"""Recurrence rule models for nostrcal_lite."""

from __future__ import annotations

from datetime import date
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RecurrencePattern(str, Enum):
    """How the next occurrence is computed from the current one."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"  # every ``interval`` days


class Weekday(IntEnum):
    """Day of week numbered from Sunday = 0."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> Weekday:
        """Weekday of a calendar date (``date.weekday()`` counts from Monday = 0)."""
        return cls((day.weekday() + 1) % 7)


LAST_WEEK = -1


class MonthlyWeekday(BaseModel):
    """The ``week``-th ``day`` of a month; ``week`` of -1 means the last one."""

    week: int = Field(..., description="1-4, or -1 for the last occurrence")
    day: Weekday

    model_config = ConfigDict(frozen=True)

    @property
    def is_last(self) -> bool:
        return self.week == LAST_WEEK


class RecurrenceRule(BaseModel):
    """User-authored recurrence settings.

    Values are not range-checked on construction; ``validate_rule`` reports
    problems and expansion stays bounded even for rules that fail it.
    """

    enabled: bool = False
    pattern: RecurrencePattern = RecurrencePattern.WEEKLY
    interval: int = Field(default=1, description="Step between occurrences (days, weeks or months)")
    max_occurrences: int = Field(default=6, description="Occurrences to generate, 1-6")
    end_date: Optional[date] = Field(default=None, description="No occurrence starts after this date")
    weekly_days: frozenset[Weekday] = Field(default_factory=frozenset)
    monthly_day: Optional[int] = Field(default=None, description="Day of month, 1-31")
    monthly_weekday: Optional[MonthlyWeekday] = None

    model_config = ConfigDict(frozen=True)


class Occurrence(BaseModel):
    """One generated occurrence; times of day are carried through unchanged."""

    start_date: date
    end_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    model_config = ConfigDict(frozen=True)
