"""Timezone validation, viewer timezone detection and clock access for nostrcal_lite."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache
from typing import Optional

from dateutil import parser as date_parser
from dateutil import tz as dateutil_tz

logger = logging.getLogger(__name__)

VIEWER_TIMEZONE_ENV = "NOSTRCAL_VIEWER_TIMEZONE"
TEST_TIME_ENV = "NOSTRCAL_TEST_TIME"


@lru_cache(maxsize=512)
def is_valid_timezone(name: Optional[str]) -> bool:
    """Check whether the runtime timezone database accepts an identifier.

    Args:
        name: Candidate IANA identifier (e.g. "Europe/Madrid")

    Returns:
        True if ``zoneinfo`` can load the zone, False otherwise
    """
    if not name or not isinstance(name, str):
        return False
    try:
        zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def load_timezone(name: str) -> zoneinfo.ZoneInfo:
    """Load a zone that is already known to be valid.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the identifier is unknown
        ValueError: If the identifier is malformed
    """
    return zoneinfo.ZoneInfo(name)


class ViewerTimezone:
    """Resolves the timezone of the person looking at the calendar.

    The configured identifier wins when it is valid; otherwise the host's local
    zone (as reported by the operating system) is used.
    """

    def __init__(self, configured: Optional[str] = None):
        """Initialize viewer timezone.

        Args:
            configured: Optional IANA identifier; falls back to NOSTRCAL_VIEWER_TIMEZONE
        """
        self.configured = configured

    @property
    def name(self) -> Optional[str]:
        """IANA name of the viewer zone, or None when only the host zone is known."""
        candidate = self.configured or os.environ.get(VIEWER_TIMEZONE_ENV)
        if candidate and is_valid_timezone(candidate):
            return candidate
        if candidate:
            logger.warning("Invalid viewer timezone %r, using host local time", candidate)
        return None

    def tzinfo(self) -> datetime.tzinfo:
        """Return a tzinfo for the viewer, never None."""
        name = self.name
        if name is not None:
            return load_timezone(name)
        return dateutil_tz.tzlocal()


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via NOSTRCAL_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2024-05-05T16:00:00+02:00")
        """
        test_time = os.environ.get(TEST_TIME_ENV)
        if test_time:
            try:
                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.timezone.utc)
                # Assume naive datetime is already UTC
                return dt.replace(tzinfo=datetime.timezone.utc)
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

        return datetime.datetime.now(datetime.timezone.utc)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function)."""
    return _time_provider.now_utc()


def now_epoch() -> int:
    """Get current time as whole epoch seconds."""
    return int(now_utc().timestamp())


def get_viewer_tzinfo(configured: Optional[str] = None) -> datetime.tzinfo:
    """Return the viewer's tzinfo (convenience function)."""
    return ViewerTimezone(configured).tzinfo()
