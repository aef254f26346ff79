"""Best-guess display timezone for temporal records.

Records may carry explicit timezone tags, and when they do not, the free-text
location is matched against a static table. A None result means "use the
viewer's local timezone".
"""

import logging
from collections.abc import Callable, Mapping
from typing import Optional, Union

from ..core.timezone_utils import is_valid_timezone
from ..records.lite_models import RawRecord, RecordView
from ..records.record_kinds import is_instant_based
from .location_timezones import LOCATION_TIMEZONES

logger = logging.getLogger(__name__)

START_TIMEZONE_TAG = "start_tzid"
END_TIMEZONE_TAG = "end_tzid"
GENERIC_TIMEZONE_TAGS = ("tzid", "timezone")


class TimeZoneResolver:
    """Resolves the IANA timezone a record should be displayed in."""

    def __init__(
        self,
        location_table: Mapping[str, str] = LOCATION_TIMEZONES,
        validator: Callable[[Optional[str]], bool] = is_valid_timezone,
    ):
        """Initialize resolver.

        Args:
            location_table: Lower-case location -> IANA zone, scanned in order
            validator: Predicate accepting zone identifiers the runtime knows
        """
        self._locations = location_table
        self._is_valid = validator

    def candidate_tags(self, kind: int) -> tuple[str, ...]:
        """Timezone tag names checked for ``kind``, in precedence order."""
        if is_instant_based(kind):
            return (START_TIMEZONE_TAG, END_TIMEZONE_TAG, *GENERIC_TIMEZONE_TAGS)
        return (START_TIMEZONE_TAG, *GENERIC_TIMEZONE_TAGS)

    def resolve(self, record: Union[RawRecord, RecordView]) -> Optional[str]:
        """Return the first valid timezone for a record, or None.

        Args:
            record: Raw record or any typed view over one

        Returns:
            IANA identifier, or None when the viewer's zone should be used
        """
        raw = record.raw if isinstance(record, RecordView) else record

        for tag_name in self.candidate_tags(raw.kind):
            value = raw.tag_value(tag_name)
            if value and self._is_valid(value):
                logger.debug("Record %s timezone %s from %s tag", raw.id, value, tag_name)
                return value
            if value:
                logger.debug("Record %s has invalid %s tag %r", raw.id, tag_name, value)

        return self.from_location(raw.tag_value("location"))

    def from_location(self, location: Optional[str]) -> Optional[str]:
        """Look up a free-text location: exact key first, then first contained key."""
        if not location:
            return None
        needle = location.strip().lower()
        if not needle:
            return None

        exact = self._locations.get(needle)
        if exact and self._is_valid(exact):
            logger.debug("Detected timezone %s from location %r", exact, location)
            return exact

        for key, zone in self._locations.items():
            if key in needle and self._is_valid(zone):
                logger.debug("Detected timezone %s from partial location match %r in %r", zone, key, location)
                return zone
        return None
