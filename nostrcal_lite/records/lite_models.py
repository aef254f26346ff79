"""Record models for nostrcal_lite.

RawRecord mirrors the immutable signed record fetched from the store. The typed
views (DateBasedEvent, TimeBasedEvent, ...) are built once at the boundary by
``parse_record`` so downstream code reads typed fields instead of rescanning tag
arrays.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import RecordValidationError, TimestampParseError
from ..temporal.lite_datetime_utils import parse_calendar_date, parse_timestamp
from .record_kinds import (
    CALENDAR_COLLECTION,
    CALENDAR_RSVP,
    DATE_BASED_EVENT,
    DEFAULT_KIND_POLICY,
    LIVE_ACTIVITY_KINDS,
    TIME_BASED_EVENT,
    KindPolicy,
)

logger = logging.getLogger(__name__)

Tag = tuple[str, ...]


@dataclass(frozen=True)
class Coordinate:
    """Address of a logical replaceable entity: ``kind:author_id:identifier``."""

    kind: int
    author_id: str
    identifier: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.author_id}:{self.identifier}"

    @classmethod
    def parse(cls, value: str) -> Coordinate:
        """Parse the string form. The identifier may itself contain colons.

        Raises:
            ValueError: If the string has fewer than three parts or a non-integer kind
        """
        parts = value.split(":", 2)
        if len(parts) != 3:
            raise ValueError(f"Invalid coordinate: {value!r}")
        kind_str, author_id, identifier = parts
        return cls(kind=int(kind_str), author_id=author_id, identifier=identifier)


class RawRecord(BaseModel):
    """Immutable unit fetched from the external record store."""

    id: str = Field(..., description="Content-addressed record identifier")
    author_id: str = Field(..., alias="pubkey", description="Author public key")
    created_at: int = Field(..., description="Creation instant in epoch seconds")
    kind: int = Field(..., description="Integer type discriminator")
    content: str = Field(default="", description="Free text body")
    tags: tuple[Tag, ...] = Field(default=(), description="Ordered tag tuples")
    sig: Optional[str] = Field(default=None, description="Signature (carried, not verified)")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def tag_value(self, name: str) -> Optional[str]:
        """Value of the first tag with ``name``, or None if absent or valueless."""
        for tag in self.tags:
            if tag and tag[0] == name:
                return tag[1] if len(tag) > 1 else None
        return None

    def tag_values(self, name: str) -> list[str]:
        """Values of every tag named ``name`` in order."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name]

    def has_tag(self, name: str, value: str) -> bool:
        return any(len(tag) > 1 and tag[0] == name and tag[1] == value for tag in self.tags)

    @property
    def identifier(self) -> Optional[str]:
        """The ``d`` tag value; empty strings count as missing."""
        return self.tag_value("d") or None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        identifier = self.identifier
        if identifier is None:
            return None
        return Coordinate(kind=self.kind, author_id=self.author_id, identifier=identifier)

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the store's field names (``pubkey``, list tags)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["tags"] = [list(tag) for tag in self.tags]
        return data


# Typed views


class RSVPStatus(str, Enum):
    """RSVP status values."""

    ACCEPTED = "accepted"
    TENTATIVE = "tentative"
    DECLINED = "declined"


class RecordView(BaseModel):
    """Typed view over a RawRecord."""

    raw: RawRecord

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> str:
        return self.raw.id

    @property
    def author_id(self) -> str:
        return self.raw.author_id

    @property
    def kind(self) -> int:
        return self.raw.kind

    @property
    def created_at(self) -> int:
        return self.raw.created_at


class GenericRecord(RecordView):
    """Any kind nostrcal_lite has no typed fields for."""


class CalendarEventView(RecordView):
    """Fields shared by date-based and time-based calendar events."""

    identifier: str
    title: str = ""
    summary: Optional[str] = None
    location: Optional[str] = None
    geohash: Optional[str] = None
    image: Optional[str] = None
    categories: tuple[str, ...] = ()

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(kind=self.kind, author_id=self.author_id, identifier=self.identifier)


class DateBasedEvent(CalendarEventView):
    """All-day event; ``end`` is inclusive of its whole day."""

    start: date
    end: Optional[date] = None


class TimeBasedEvent(CalendarEventView):
    """Event anchored to absolute instants (epoch seconds)."""

    start: int
    end: Optional[int] = None
    start_tzid: Optional[str] = None
    end_tzid: Optional[str] = None


class CalendarCollection(RecordView):
    """A calendar grouping member events by ``a``/``e`` references."""

    identifier: str
    title: str
    description: str = ""
    image: Optional[str] = None
    members: tuple[str, ...] = ()


class EventRSVP(RecordView):
    """RSVP attachment referencing an event by id (``e``) and/or coordinate (``a``)."""

    status: RSVPStatus
    event_id: Optional[str] = None
    address: Optional[str] = None

    @property
    def note(self) -> str:
        return self.raw.content


class LiveActivity(RecordView):
    """Live event, interactive room or room meeting."""

    identifier: str
    title: str = ""
    status: Optional[str] = None
    starts: Optional[int] = None
    ends: Optional[int] = None


ParsedRecord = Union[
    DateBasedEvent, TimeBasedEvent, CalendarCollection, EventRSVP, LiveActivity, GenericRecord
]


def _require_identifier(raw: RawRecord) -> str:
    identifier = raw.identifier
    if identifier is None:
        raise RecordValidationError(f"Record {raw.id} (kind {raw.kind}) is missing its d tag")
    return identifier


def _event_fields(raw: RawRecord) -> dict[str, Any]:
    return {
        "raw": raw,
        "identifier": _require_identifier(raw),
        "title": raw.tag_value("title") or raw.tag_value("name") or "",
        "summary": raw.tag_value("summary"),
        "location": raw.tag_value("location"),
        "geohash": raw.tag_value("g"),
        "image": raw.tag_value("image"),
        "categories": tuple(raw.tag_values("t")),
    }


def _optional_timestamp(raw: RawRecord, name: str) -> Optional[int]:
    value = raw.tag_value(name)
    if not value:
        return None
    try:
        return int(parse_timestamp(value))
    except TimestampParseError as e:
        raise RecordValidationError(f"Record {raw.id} has invalid {name!r}: {e}") from e


def _parse_date_based(raw: RawRecord) -> DateBasedEvent:
    fields = _event_fields(raw)
    start = raw.tag_value("start")
    end = raw.tag_value("end")
    try:
        start_date = parse_calendar_date(start or "")
        end_date = parse_calendar_date(end) if end else None
    except ValueError as e:
        raise RecordValidationError(f"Record {raw.id} has invalid calendar date: {e}") from e
    return DateBasedEvent(start=start_date, end=end_date, **fields)


def _parse_time_based(raw: RawRecord) -> TimeBasedEvent:
    fields = _event_fields(raw)
    start = _optional_timestamp(raw, "start")
    if start is None:
        raise RecordValidationError(f"Record {raw.id} is missing its start tag")
    return TimeBasedEvent(
        start=start,
        end=_optional_timestamp(raw, "end"),
        start_tzid=raw.tag_value("start_tzid"),
        end_tzid=raw.tag_value("end_tzid"),
        **fields,
    )


def _parse_collection(raw: RawRecord) -> CalendarCollection:
    identifier = _require_identifier(raw)
    title = raw.tag_value("title")
    if not title:
        raise RecordValidationError(f"Calendar {raw.id} is missing its title")
    members = tuple(tag[1] for tag in raw.tags if len(tag) > 1 and tag[0] in ("a", "e"))
    return CalendarCollection(
        raw=raw,
        identifier=identifier,
        title=title,
        description=raw.content,
        image=raw.tag_value("image"),
        members=members,
    )


def _parse_rsvp(raw: RawRecord) -> EventRSVP:
    status = raw.tag_value("status")
    try:
        parsed_status = RSVPStatus(status)
    except ValueError as e:
        raise RecordValidationError(f"RSVP {raw.id} has invalid status {status!r}") from e
    return EventRSVP(
        raw=raw,
        status=parsed_status,
        event_id=raw.tag_value("e"),
        address=raw.tag_value("a"),
    )


def _parse_live(raw: RawRecord) -> LiveActivity:
    return LiveActivity(
        raw=raw,
        identifier=_require_identifier(raw),
        title=raw.tag_value("title") or "",
        status=raw.tag_value("status"),
        starts=_optional_timestamp(raw, "starts"),
        ends=_optional_timestamp(raw, "ends"),
    )


_PARSERS = {
    DATE_BASED_EVENT: _parse_date_based,
    TIME_BASED_EVENT: _parse_time_based,
    CALENDAR_COLLECTION: _parse_collection,
    CALENDAR_RSVP: _parse_rsvp,
    **{kind: _parse_live for kind in LIVE_ACTIVITY_KINDS},
}


def parse_record(raw: RawRecord, policy: KindPolicy = DEFAULT_KIND_POLICY) -> ParsedRecord:
    """Build the typed view for a raw record.

    Raises:
        RecordValidationError: If required tags are missing or malformed
    """
    parser = _PARSERS.get(raw.kind)
    if parser is not None:
        return parser(raw)
    if policy.is_replaceable(raw.kind):
        _require_identifier(raw)
    return GenericRecord(raw=raw)


def parse_records(
    records: Iterable[RawRecord], policy: KindPolicy = DEFAULT_KIND_POLICY
) -> list[ParsedRecord]:
    """Build typed views, dropping records that fail validation."""
    parsed: list[ParsedRecord] = []
    for raw in records:
        try:
            parsed.append(parse_record(raw, policy))
        except RecordValidationError as e:
            logger.debug("Dropping invalid record: %s", e)
    return parsed


def parse_raw_records(payload: Iterable[Any]) -> list[RawRecord]:
    """Coerce untrusted wire mappings into RawRecords, dropping malformed entries."""
    records: list[RawRecord] = []
    dropped = 0
    for item in payload:
        if isinstance(item, RawRecord):
            records.append(item)
            continue
        try:
            records.append(RawRecord.model_validate(item))
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropping malformed record payload: %s", e.errors(include_url=False))
    if dropped:
        logger.warning("Dropped %d malformed record payloads", dropped)
    return records
