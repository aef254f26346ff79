"""iCalendar export for calendar and live event records - nostrcal_lite."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from urllib.parse import quote

from icalendar import Calendar, Event as ICalEvent

from ..core.timezone_utils import now_utc
from ..exceptions import ICSExportError, TimestampParseError
from ..records.lite_models import RawRecord, RecordView
from ..records.record_kinds import LIVE_EVENT, ROOM_MEETING, is_instant_based
from ..temporal.lite_datetime_utils import parse_calendar_date, parse_timestamp

logger = logging.getLogger(__name__)

PRODID = "-//Nostr Event Calendar//EN"
UID_DOMAIN = "nostr-event"
DEFAULT_TITLE = "Untitled"
DEFAULT_TIMED_DURATION = timedelta(hours=1)
URL_TIME_FORMAT = "%Y%m%dT%H%M%SZ"

Moment = Union[date, datetime]


@dataclass(frozen=True)
class ExportWindow:
    """Start/end of a record ready for export.

    For all-day records ``end`` is exclusive (the day after the last day).
    """

    start: Moment
    end: Moment
    all_day: bool


def _raw(record: Union[RawRecord, RecordView]) -> RawRecord:
    return record.raw if isinstance(record, RecordView) else record


def _start_end_tags(raw: RawRecord) -> tuple[Optional[str], Optional[str]]:
    if raw.kind in (LIVE_EVENT, ROOM_MEETING):
        start = raw.tag_value("starts")
    else:
        start = raw.tag_value("start")
    end = raw.tag_value("end") or raw.tag_value("ends")
    return start, end


def export_window(record: Union[RawRecord, RecordView]) -> ExportWindow:
    """Compute the export start/end of a record.

    Raises:
        ICSExportError: If the record has no start or its values cannot be parsed
    """
    raw = _raw(record)
    start_value, end_value = _start_end_tags(raw)
    if not start_value:
        raise ICSExportError(f"Record {raw.id} must have a start time")

    if is_instant_based(raw.kind):
        try:
            start = datetime.fromtimestamp(parse_timestamp(start_value), tz=timezone.utc)
            if end_value:
                end = datetime.fromtimestamp(parse_timestamp(end_value), tz=timezone.utc)
            else:
                end = start + DEFAULT_TIMED_DURATION
        except TimestampParseError as e:
            raise ICSExportError(f"Record {raw.id} has an invalid timestamp: {e}") from e
        return ExportWindow(start=start, end=max(start, end), all_day=False)

    try:
        start_day = parse_calendar_date(start_value)
        last_day = parse_calendar_date(end_value) if end_value else start_day
    except ValueError as e:
        raise ICSExportError(f"Record {raw.id} has an invalid date: {e}") from e
    return ExportWindow(start=start_day, end=max(start_day, last_day) + timedelta(days=1), all_day=True)


def build_calendar(record: Union[RawRecord, RecordView]) -> Calendar:
    """Build a VCALENDAR holding a single VEVENT for ``record``.

    Raises:
        ICSExportError: If the record has no usable start
    """
    raw = _raw(record)
    window = export_window(raw)

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    event = ICalEvent()
    event.add("uid", f"{raw.id}@{UID_DOMAIN}")
    event.add("dtstamp", now_utc().replace(microsecond=0))
    event.add("dtstart", window.start)
    event.add("dtend", window.end)
    event.add("summary", raw.tag_value("title") or DEFAULT_TITLE)
    event.add("description", raw.content)
    location = raw.tag_value("location")
    if location:
        event.add("location", location)
    event.add("status", "CONFIRMED")
    cal.add_component(event)
    return cal


def generate_ics(record: Union[RawRecord, RecordView]) -> str:
    """Render a record as an iCalendar document.

    Raises:
        ICSExportError: If the record has no usable start
    """
    ics = build_calendar(record).to_ical().decode("utf-8")
    logger.debug("Generated ICS for record %s (%d bytes)", _raw(record).id, len(ics))
    return ics


def _url_time(moment: Moment) -> str:
    if isinstance(moment, datetime):
        return moment.astimezone(timezone.utc).strftime(URL_TIME_FORMAT)
    return datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc).strftime(URL_TIME_FORMAT)


def calendar_links(record: Union[RawRecord, RecordView]) -> dict[str, str]:
    """Add-to-calendar URLs for Google, Outlook and Yahoo.

    Raises:
        ICSExportError: If the record has no usable start
    """
    raw = _raw(record)
    window = export_window(raw)
    title = quote(raw.tag_value("title") or DEFAULT_TITLE, safe="")
    details = quote(raw.content or "", safe="")
    location = quote(raw.tag_value("location") or "", safe="")
    start = _url_time(window.start)
    end = _url_time(window.end)

    return {
        "google": (
            "https://calendar.google.com/calendar/render?action=TEMPLATE"
            f"&text={title}&dates={start}/{end}&details={details}&location={location}"
        ),
        "outlook": (
            "https://outlook.live.com/calendar/0/deeplink/compose?"
            f"subject={title}&startdt={start}&enddt={end}&body={details}&location={location}"
        ),
        "yahoo": (
            "https://calendar.yahoo.com/?v=60&view=d&type=20"
            f"&title={title}&st={start}&et={end}&desc={details}&in_loc={location}"
        ),
    }
