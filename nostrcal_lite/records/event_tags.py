"""Tag tuples for outgoing records (event edits and RSVPs) - nostrcal_lite.

Editing an event publishes a new record that reuses the original ``d`` value,
so the resolver treats it as the next version of the same coordinate.
"""

import logging
import uuid
from collections.abc import Iterable
from typing import Optional

from ..geo.geohash import DEFAULT_PRECISION, GeoPoint, encode
from ..temporal.lite_datetime_utils import WallClockConverter, parse_calendar_date
from .lite_models import RawRecord, RSVPStatus
from .record_kinds import DATE_BASED_EVENT, TIME_BASED_EVENT

logger = logging.getLogger(__name__)

Tags = list[list[str]]


def edit_identifier(record: RawRecord) -> Optional[str]:
    """The ``d`` value to reuse verbatim when publishing an edit of ``record``."""
    return record.identifier


def new_identifier() -> str:
    """Random identifier for a new record's ``d`` tag."""
    return uuid.uuid4().hex[:16]


def validate_event_input(
    title: str,
    start_date: Optional[str],
    end_date: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> list[str]:
    """Check user-entered event fields before building tags.

    Returns:
        Error messages; empty when the input is acceptable
    """
    errors: list[str] = []
    if not title or not title.strip():
        errors.append("Title is required")
    if not start_date:
        errors.append("Start date is required")
        return errors

    try:
        start_day = parse_calendar_date(start_date)
    except ValueError:
        errors.append("Start date is invalid")
        return errors

    if end_date:
        try:
            end_day = parse_calendar_date(end_date)
        except ValueError:
            errors.append("End date is invalid")
            return errors
        if end_day < start_day:
            errors.append("End date must be after start date")
        elif end_day == start_day and start_time and end_time and end_time < start_time:
            errors.append("End time must be after start time")
    return errors


def build_event_tags(
    kind: int,
    identifier: str,
    title: str,
    start_date: str,
    start_time: Optional[str] = None,
    end_date: Optional[str] = None,
    end_time: Optional[str] = None,
    timezone_id: Optional[str] = None,
    description: str = "",
    location: str = "",
    coordinates: Optional[GeoPoint] = None,
    image: Optional[str] = None,
    categories: Iterable[str] = (),
    converter: Optional[WallClockConverter] = None,
    geohash_precision: int = DEFAULT_PRECISION,
) -> Tags:
    """Build the tag list for a date-based or time-based calendar event.

    Time-based events store ``start``/``end`` as epoch seconds computed from
    the wall-clock input in ``timezone_id`` and carry ``start_tzid``/``end_tzid``
    for display. Date-based events store the calendar dates unchanged.

    Args:
        kind: DATE_BASED_EVENT or TIME_BASED_EVENT
        identifier: ``d`` value; reuse the original one when editing
        title: Event title
        start_date: ``YYYY-MM-DD``
        start_time: ``HH:MM`` (time-based only)
        end_date: Optional ``YYYY-MM-DD``
        end_time: Optional ``HH:MM`` (time-based only)
        timezone_id: IANA zone the times were entered in
        description: Free text description
        location: Free text location
        coordinates: Optional location, stored as a geohash ``g`` tag
        image: Optional image URL
        categories: Values stored as ``t`` tags
        converter: Wall-clock converter (a default one when None)
        geohash_precision: Characters in the ``g`` geohash

    Returns:
        Tag tuples in publishing order

    Raises:
        ValueError: If ``kind`` is not a calendar event kind
    """
    if kind not in (DATE_BASED_EVENT, TIME_BASED_EVENT):
        raise ValueError(f"Unsupported event kind: {kind}")

    tags: Tags = [
        ["d", identifier],
        ["title", title],
        ["description", description],
        ["location", location],
    ]

    if kind == TIME_BASED_EVENT:
        converter = converter or WallClockConverter()
        start_value = str(converter.to_instant(start_date, start_time, timezone_id))
        end_value = None
        if end_date or end_time:
            end_value = str(converter.to_instant(end_date or start_date, end_time, timezone_id))
    else:
        start_value = start_date
        end_value = end_date or None

    tags.append(["start", start_value])
    if end_value:
        tags.append(["end", end_value])

    if kind == TIME_BASED_EVENT and timezone_id:
        tags.append(["start_tzid", timezone_id])
        if end_value:
            tags.append(["end_tzid", timezone_id])

    if coordinates is not None:
        tags.append(["g", encode(coordinates.lat, coordinates.lng, geohash_precision)])
    if image:
        tags.append(["image", image])
    for category in categories:
        tags.append(["t", category])

    logger.debug("Built %d tags for kind %d event %s", len(tags), kind, identifier)
    return tags


def build_rsvp_tags(entity: RawRecord, status: RSVPStatus) -> Tags:
    """Tags for an RSVP referencing ``entity`` by both id and coordinate.

    Raises:
        ValueError: If the entity has no ``d`` tag to build a coordinate from
    """
    coordinate = entity.coordinate
    if coordinate is None:
        raise ValueError(f"Record {entity.id} has no coordinate to RSVP to")
    return [
        ["e", entity.id],
        ["a", str(coordinate)],
        ["d", new_identifier()],
        ["status", RSVPStatus(status).value],
        ["p", entity.author_id],
    ]
