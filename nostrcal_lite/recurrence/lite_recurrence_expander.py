"""Recurrence expansion for event authoring - nostrcal_lite.

Expands one user-authored template into a short, bounded list of dated
occurrences that are then published as independent records. Only the small
daily/weekly/monthly subset the authoring form offers is supported.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta, weekdays

from .recurrence_models import MonthlyWeekday, Occurrence, RecurrencePattern, RecurrenceRule, Weekday

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 6
SAFETY_HORIZON_DAYS = 365
MAX_MONTH_DAY = 31


def _dateutil_weekday(day: Weekday, n: Optional[int] = None):
    # dateutil counts from Monday = 0
    return weekdays[(int(day) + 6) % 7](n)


class LiteRecurrenceExpander:
    """Generates bounded occurrence lists from a RecurrenceRule."""

    def __init__(self, max_occurrences: int = MAX_OCCURRENCES, horizon_days: int = SAFETY_HORIZON_DAYS):
        """Initialize expander.

        Args:
            max_occurrences: Hard cap applied on top of the rule's own count
            horizon_days: Expansion stops once an occurrence would start this far past the base
        """
        self.max_occurrences = max_occurrences
        self.horizon_days = horizon_days

    def expand(
        self,
        base_start: date,
        base_end: date,
        rule: RecurrenceRule,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> list[Occurrence]:
        """Expand a template occurrence according to ``rule``.

        Each occurrence keeps the base duration in days and the base times of
        day. Invalid rules still terminate: the occurrence cap and the safety
        horizon bound the loop.

        Args:
            base_start: First occurrence start date
            base_end: First occurrence end date
            rule: Recurrence settings
            start_time: Start time of day carried to every occurrence
            end_time: End time of day carried to every occurrence

        Returns:
            Occurrences starting with the base one
        """
        if not rule.enabled:
            return [Occurrence(start_date=base_start, end_date=base_end, start_time=start_time, end_time=end_time)]

        if rule.interval < 1:
            logger.warning("Recurrence interval %d is invalid, using 1", rule.interval)
            rule = rule.model_copy(update={"interval": 1})

        duration = base_end - base_start
        limit = min(rule.max_occurrences, self.max_occurrences)
        horizon = base_start + timedelta(days=self.horizon_days)
        occurrences: list[Occurrence] = []
        current = base_start

        while len(occurrences) < limit:
            if rule.end_date is not None and rule.end_date < current:
                break

            occurrences.append(
                Occurrence(
                    start_date=current,
                    end_date=current + duration,
                    start_time=start_time,
                    end_time=end_time,
                )
            )
            if len(occurrences) >= limit:
                break

            try:
                current = self.next_occurrence(current, rule)
            except OverflowError:
                logger.warning("Recurrence left the supported date range after %s", current)
                break
            if current > horizon:
                logger.debug("Recurrence stopped at safety horizon after %d occurrences", len(occurrences))
                break

        logger.debug("Expanded %s rule into %d occurrences", rule.pattern.value, len(occurrences))
        return occurrences

    def next_occurrence(self, current: date, rule: RecurrenceRule) -> date:
        """Date of the occurrence after ``current``."""
        interval = max(rule.interval, 1)

        if rule.pattern == RecurrencePattern.WEEKLY:
            return self._next_weekly(current, rule.weekly_days, interval)
        if rule.pattern == RecurrencePattern.MONTHLY:
            if rule.monthly_weekday is not None:
                return self._next_monthly_weekday(current, rule.monthly_weekday, interval)
            if rule.monthly_day is not None:
                day = min(max(rule.monthly_day, 1), MAX_MONTH_DAY)
                # relativedelta clamps to the last day of shorter months
                return current + relativedelta(months=interval, day=day)
            return current + relativedelta(months=interval)
        # daily and custom
        return current + timedelta(days=interval)

    def _next_weekly(self, current: date, weekly_days: frozenset[Weekday], interval: int) -> date:
        if not weekly_days:
            return current + timedelta(weeks=interval)

        today = Weekday.of(current)
        later = sorted(day for day in weekly_days if day > today)
        if later:
            step = later[0] - today
        else:
            step = 7 - today + min(weekly_days)
        return current + timedelta(days=step + (interval - 1) * 7)

    def _next_monthly_weekday(self, current: date, target: MonthlyWeekday, interval: int) -> date:
        first = current + relativedelta(months=interval, day=1)
        if target.is_last:
            return first + relativedelta(day=MAX_MONTH_DAY, weekday=_dateutil_weekday(target.day, -1))
        if target.week >= 1:
            candidate = first + relativedelta(weekday=_dateutil_weekday(target.day, target.week))
            if candidate.month == first.month:
                return candidate
        logger.debug("Month %s has no week %d %s, using the first", first, target.week, target.day.name)
        return first


def validate_rule(rule: RecurrenceRule, max_occurrences: int = MAX_OCCURRENCES) -> list[str]:
    """Check a rule without side effects.

    Returns:
        Human readable error messages; empty when the rule is valid or disabled
    """
    errors: list[str] = []
    if not rule.enabled:
        return errors

    if rule.interval < 1:
        errors.append("Interval must be at least 1")

    if rule.max_occurrences < 1 or rule.max_occurrences > max_occurrences:
        errors.append(f"Number of events must be between 1 and {max_occurrences}")

    if rule.pattern == RecurrencePattern.WEEKLY and not rule.weekly_days:
        errors.append("Please select at least one day of the week")

    if rule.pattern == RecurrencePattern.MONTHLY:
        if rule.monthly_day is None and rule.monthly_weekday is None:
            errors.append("Please specify a monthly pattern")
        elif rule.monthly_day is not None and rule.monthly_weekday is not None:
            errors.append("Please choose either a day of the month or a weekday pattern")

        if rule.monthly_day is not None and not 1 <= rule.monthly_day <= MAX_MONTH_DAY:
            errors.append("Day of month must be between 1 and 31")

        weekday = rule.monthly_weekday
        if weekday is not None and not (weekday.is_last or 1 <= weekday.week <= 4):
            errors.append("Week of month must be between 1 and 4, or last")

    return errors


_default_expander = LiteRecurrenceExpander()


def expand(
    base_start: date,
    base_end: date,
    rule: RecurrenceRule,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> list[Occurrence]:
    """Expand with the default caps (convenience function)."""
    return _default_expander.expand(base_start, base_end, rule, start_time, end_time)
