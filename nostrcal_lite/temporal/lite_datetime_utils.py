"""Wall-clock and instant conversion utilities - nostrcal_lite.

Stored records carry either a calendar date (``YYYY-MM-DD``, timezone
independent) or an epoch timestamp with an optional display timezone. This
module turns user-entered wall-clock values into instants on the write path and
renders instants in a chosen zone on the read path. Public functions never
raise for malformed input: they fall back to the viewer's local zone or to the
current instant and log what happened.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

from ..core.timezone_utils import ViewerTimezone, is_valid_timezone, load_timezone, now_epoch
from ..exceptions import TimestampParseError, TimezoneConversionError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"
LONG_DATE_FORMAT = "%B %d, %Y"
TWELVE_HOUR_TIME_FORMAT = "%I:%M %p"

TimestampInput = Union[str, int, float]


def _year_of(seconds: float) -> Optional[int]:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).year
    except (OverflowError, ValueError, OSError):
        return None


def parse_timestamp(value: TimestampInput) -> float:
    """Interpret a stored timestamp as epoch seconds.

    Digit count decides: up to 10 digits are seconds, 12 or more are
    milliseconds. An 11 digit value stays seconds only if that reading lands
    on or before the year 2100.

    Args:
        value: Seconds or milliseconds as int, float or numeric string

    Returns:
        Epoch seconds

    Raises:
        TimestampParseError: If the value is not numeric or not representable as a date
    """
    if isinstance(value, bool):
        raise TimestampParseError(f"Invalid timestamp: {value!r}")
    number: float
    if isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError as e:
                raise TimestampParseError(f"Invalid timestamp: {value!r}") from e
    else:
        number = value

    if not math.isfinite(number):
        raise TimestampParseError(f"Invalid timestamp: {value!r}")

    magnitude = abs(number)
    if magnitude < 1_000_000_000:
        logger.debug("Timestamp %s seems too small, treating as seconds", value)
        seconds = number
    elif magnitude < 10_000_000_000:
        seconds = number
    elif magnitude < 100_000_000_000:
        year = _year_of(number)
        if year is None or year > 2100:
            logger.debug("Timestamp %s treated as milliseconds (far future as seconds)", value)
            seconds = number / 1000
        else:
            seconds = number
    else:
        seconds = number / 1000

    year = _year_of(seconds)
    if year is None:
        raise TimestampParseError(f"Timestamp {value!r} is out of range")
    if year < 1970 or year > 2100:
        logger.warning("Timestamp %s resulted in unusual year %d", value, year)
    return seconds


def normalize_timestamp(value: TimestampInput) -> float:
    """Interpret a stored timestamp, falling back to now when it is unusable."""
    try:
        return parse_timestamp(value)
    except TimestampParseError as e:
        logger.warning("%s; falling back to current time", e)
        return float(now_epoch())


def parse_calendar_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        ValueError: If the string is not a valid date
    """
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def date_span_contains(start: date, end: Optional[date], day: date) -> bool:
    """Check whether ``day`` falls in a date-based span whose end is inclusive."""
    last = end if end is not None and end >= start else start
    return start <= day <= last


def format_calendar_date(value: str, fmt: str = LONG_DATE_FORMAT) -> str:
    """Render a stored calendar date without any timezone shift."""
    try:
        return parse_calendar_date(value).strftime(fmt)
    except ValueError:
        logger.debug("Unparseable calendar date %r, displaying verbatim", value)
        return value


def _parse_wall_clock(date_str: str, time_str: Optional[str]) -> datetime:
    try:
        day = parse_calendar_date(date_str)
        clock = (time_str or "00:00").strip()
        parts = clock.split(":")
        hour, minute = int(parts[0]), int(parts[1])
        return datetime(day.year, day.month, day.day, hour, minute)
    except (ValueError, IndexError, AttributeError) as e:
        raise TimezoneConversionError(f"Invalid wall-clock value {date_str!r} {time_str!r}") from e


@dataclass(frozen=True)
class WallClock:
    """A date and time-of-day as shown on a clock in some zone."""

    date: str
    time: str


class WallClockConverter:
    """Converts between wall-clock values in a timezone and absolute instants."""

    # UTC offsets span -12h to +14h, so any target lies within 27h of the viewer reading
    SEARCH_WINDOW_SECONDS = 27 * 60 * 60
    RESOLUTION_SECONDS = 60

    def __init__(self, viewer_timezone: Optional[str] = None):
        """Initialize converter.

        Args:
            viewer_timezone: IANA zone of the viewer; host local time when None
        """
        self.viewer = ViewerTimezone(viewer_timezone)

    def to_instant(self, date_str: str, time_str: Optional[str], timezone_id: Optional[str]) -> int:
        """Find the epoch second whose wall clock in ``timezone_id`` shows date and time.

        Falls back to the viewer's local interpretation when the zone or the
        input cannot be used.

        Args:
            date_str: Calendar date ``YYYY-MM-DD``
            time_str: Time of day ``HH:MM`` (midnight when empty)
            timezone_id: IANA zone the user entered the value in

        Returns:
            Epoch seconds at second 0 of the matching minute
        """
        try:
            return self._search_instant(date_str, time_str, timezone_id)
        except TimezoneConversionError as e:
            logger.warning("%s; interpreting in viewer local time", e)
            return self._viewer_local_instant(date_str, time_str)

    def _search_instant(self, date_str: str, time_str: Optional[str], timezone_id: Optional[str]) -> int:
        if not timezone_id or not is_valid_timezone(timezone_id):
            raise TimezoneConversionError(f"Invalid timezone {timezone_id!r}")
        zone = load_timezone(timezone_id)
        target = _parse_wall_clock(date_str, time_str)
        target_key = (target.year, target.month, target.day, target.hour, target.minute)

        try:
            naive_epoch = int(target.replace(tzinfo=self.viewer.tzinfo()).timestamp())
            low = naive_epoch - self.SEARCH_WINDOW_SECONDS
            high = naive_epoch + self.SEARCH_WINDOW_SECONDS
            if not self._wall_key(low, zone) <= target_key <= self._wall_key(high, zone):
                raise TimezoneConversionError(
                    f"{date_str!r} {time_str!r} in {timezone_id} is outside the search window"
                )
            steps = 0
            while high - low > self.RESOLUTION_SECONDS:
                steps += 1
                mid = (low + high) // 2
                key = self._wall_key(mid, zone)
                if key < target_key:
                    low = mid
                elif key > target_key:
                    high = mid
                else:
                    logger.debug("Resolved %s %s in %s after %d steps", date_str, time_str, timezone_id, steps)
                    return mid - datetime.fromtimestamp(mid, tz=zone).second
        except (OverflowError, ValueError, OSError) as e:
            raise TimezoneConversionError(f"Cannot convert {date_str!r} {time_str!r}: {e}") from e

        # Nonexistent local time (DST gap); closest instant before it
        logger.debug("No exact match for %s %s in %s", date_str, time_str, timezone_id)
        return low

    @staticmethod
    def _wall_key(epoch: int, zone) -> tuple[int, int, int, int, int]:
        rendered = datetime.fromtimestamp(epoch, tz=zone)
        return (rendered.year, rendered.month, rendered.day, rendered.hour, rendered.minute)

    def _viewer_local_instant(self, date_str: str, time_str: Optional[str]) -> int:
        try:
            target = _parse_wall_clock(date_str, time_str)
            return int(target.replace(tzinfo=self.viewer.tzinfo()).timestamp())
        except (TimezoneConversionError, OverflowError, ValueError, OSError) as e:
            logger.error("Cannot interpret %r %r at all (%s); using current time", date_str, time_str, e)
            return now_epoch()

    def display_zone(self, timezone_id: Optional[str]):
        """Zone used for display: ``timezone_id`` when valid, else the viewer zone."""
        if timezone_id and is_valid_timezone(timezone_id):
            return load_timezone(timezone_id)
        if timezone_id:
            logger.debug("Invalid timezone %r, falling back to viewer timezone", timezone_id)
        return self.viewer.tzinfo()

    def localize(self, timestamp: TimestampInput, timezone_id: Optional[str] = None) -> datetime:
        """Aware datetime for a stored timestamp in the display zone."""
        seconds = normalize_timestamp(timestamp)
        return datetime.fromtimestamp(seconds, tz=self.display_zone(timezone_id))

    def to_display(
        self,
        timestamp: TimestampInput,
        timezone_id: Optional[str] = None,
        fmt: str = DATETIME_FORMAT,
    ) -> str:
        """Render a stored timestamp in ``timezone_id`` (viewer zone if missing/invalid)."""
        return self.localize(timestamp, timezone_id).strftime(fmt)

    def format_date(self, timestamp: TimestampInput, timezone_id: Optional[str] = None, fmt: str = DATE_FORMAT) -> str:
        return self.to_display(timestamp, timezone_id, fmt)

    def format_time(self, timestamp: TimestampInput, timezone_id: Optional[str] = None, fmt: str = TIME_FORMAT) -> str:
        return self.to_display(timestamp, timezone_id, fmt)

    def to_wall_clock(self, timestamp: TimestampInput, timezone_id: Optional[str] = None) -> WallClock:
        """Inverse of ``to_instant``: the date and time shown in the display zone."""
        local = self.localize(timestamp, timezone_id)
        return WallClock(date=local.strftime(DATE_FORMAT), time=local.strftime(TIME_FORMAT))

    def display_range(
        self,
        start: TimestampInput,
        end: Optional[TimestampInput],
        timezone_id: Optional[str] = None,
        fmt: str = DATETIME_FORMAT,
    ) -> tuple[str, Optional[str]]:
        """Render start and end in the same zone; an end before start shows as start."""
        start_local = self.localize(start, timezone_id)
        if end is None:
            return start_local.strftime(fmt), None
        end_local = self.localize(end, timezone_id)
        if end_local < start_local:
            logger.debug("End %s precedes start %s; clamping for display", end, start)
            end_local = start_local
        return start_local.strftime(fmt), end_local.strftime(fmt)


def timezone_abbreviation(timezone_id: Optional[str], timestamp: Optional[TimestampInput] = None) -> str:
    """Short zone name (e.g. "CEST") for an instant, or "" when unknown."""
    if not timezone_id or not is_valid_timezone(timezone_id):
        return ""
    seconds = normalize_timestamp(timestamp) if timestamp is not None else float(now_epoch())
    return datetime.fromtimestamp(seconds, tz=load_timezone(timezone_id)).tzname() or ""
