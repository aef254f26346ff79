"""Command-line entry for nostrcal_lite.

Small offline tools over the core: resolve a JSON dump of records, convert
wall-clock values, expand recurrences, encode geohashes and export ICS.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, NoReturn, Optional

from . import _init_logging
from .config_loader import Config, load_config
from .exceptions import NostrCalError
from .lite_logging import configure_lite_logging

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for nostrcal_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="nostrcal_lite",
        description="nostrcal lite - calendar record resolution and time tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m nostrcal_lite resolve events.json --rsvps
  python -m nostrcal_lite to-instant 2024-05-05 16:00 Europe/Madrid
  python -m nostrcal_lite display 1714917600 --tz Europe/Madrid
  python -m nostrcal_lite expand 2024-05-06 2024-05-06 --pattern weekly --days 1 3 --count 4
  python -m nostrcal_lite geohash encode 40.4168 -3.7038
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: NOSTRCAL_CONFIG)")
    parser.add_argument("--log-level", metavar="LEVEL", help="Logging level (default: from config)")
    parser.add_argument("--viewer-timezone", metavar="TZ", help="IANA zone used for display fallbacks")

    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve a JSON list of records to current entities")
    resolve.add_argument("path", help="JSON file with a list of records, or - for stdin")
    resolve.add_argument("--rsvps", action="store_true", help="Include the RSVP summary of each event")

    to_instant = sub.add_parser("to-instant", help="Convert a wall-clock value to epoch seconds")
    to_instant.add_argument("date", help="YYYY-MM-DD")
    to_instant.add_argument("time", help="HH:MM")
    to_instant.add_argument("timezone", help="IANA zone the value is expressed in")

    display = sub.add_parser("display", help="Render a stored timestamp in a timezone")
    display.add_argument("timestamp", help="Epoch seconds or milliseconds")
    display.add_argument("--tz", help="IANA zone (viewer zone when omitted)")
    display.add_argument("--format", default=None, help="strftime format")

    expand = sub.add_parser("expand", help="Expand a recurrence rule")
    expand.add_argument("start", help="Base start date YYYY-MM-DD")
    expand.add_argument("end", help="Base end date YYYY-MM-DD")
    expand.add_argument("--pattern", choices=["daily", "weekly", "monthly", "custom"], default="weekly")
    expand.add_argument("--interval", type=int, default=1)
    expand.add_argument("--count", type=int, default=6, help="Number of occurrences (1-6)")
    expand.add_argument("--until", help="Last allowed start date YYYY-MM-DD")
    expand.add_argument("--days", type=int, nargs="*", default=[], help="Weekdays, 0=Sunday")
    expand.add_argument("--monthly-day", type=int)
    expand.add_argument("--monthly-week", type=int, help="1-4, or -1 for last")
    expand.add_argument("--monthly-weekday", type=int, help="0=Sunday")

    geohash = sub.add_parser("geohash", help="Encode or decode a geohash")
    geo_sub = geohash.add_subparsers(dest="geo_command", required=True)
    encode = geo_sub.add_parser("encode")
    encode.add_argument("lat", type=float)
    encode.add_argument("lng", type=float)
    encode.add_argument("--precision", type=int)
    decode = geo_sub.add_parser("decode")
    decode.add_argument("geohash")

    ics = sub.add_parser("ics", help="Export a record as iCalendar")
    ics.add_argument("path", help="JSON file with a record or list of records, or - for stdin")
    ics.add_argument("--id", dest="record_id", help="Record id to export (default: first)")

    return parser


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text())


def _as_list(payload: Any) -> list[Any]:
    return payload if isinstance(payload, list) else [payload]


def _cmd_resolve(args: argparse.Namespace, config: Config) -> int:
    from .records.lite_models import parse_raw_records
    from .records.lite_record_resolver import LiteRecordResolver, summarize_rsvps

    resolver = LiteRecordResolver(config.kind_policy)
    resolved = resolver.resolve(parse_raw_records(_as_list(_read_json(args.path))))
    events, attachments = resolver.split_by_kind(resolved)

    output = []
    for event in events:
        entry: dict[str, Any] = event.to_wire()
        if args.rsvps:
            summary = summarize_rsvps(resolver.aggregate_attachments(event, attachments))
            entry["rsvps"] = {
                "accepted": summary.accepted,
                "tentative": summary.tentative,
                "declined": summary.declined,
            }
        output.append(entry)
    print(json.dumps(output, indent=2))
    return 0


def _cmd_to_instant(args: argparse.Namespace, config: Config) -> int:
    from .temporal.lite_datetime_utils import WallClockConverter

    print(WallClockConverter(config.viewer_timezone).to_instant(args.date, args.time, args.timezone))
    return 0


def _cmd_display(args: argparse.Namespace, config: Config) -> int:
    from .temporal.lite_datetime_utils import DATETIME_FORMAT, WallClockConverter

    converter = WallClockConverter(config.viewer_timezone)
    print(converter.to_display(args.timestamp, args.tz, args.format or DATETIME_FORMAT))
    return 0


def _cmd_expand(args: argparse.Namespace, config: Config) -> int:
    from .recurrence.lite_recurrence_expander import LiteRecurrenceExpander, validate_rule
    from .recurrence.recurrence_models import MonthlyWeekday, RecurrenceRule
    from .temporal.lite_datetime_utils import parse_calendar_date

    monthly_weekday = None
    if args.monthly_week is not None and args.monthly_weekday is not None:
        monthly_weekday = MonthlyWeekday(week=args.monthly_week, day=args.monthly_weekday)
    rule = RecurrenceRule(
        enabled=True,
        pattern=args.pattern,
        interval=args.interval,
        max_occurrences=args.count,
        end_date=parse_calendar_date(args.until) if args.until else None,
        weekly_days=frozenset(args.days),
        monthly_day=args.monthly_day,
        monthly_weekday=monthly_weekday,
    )
    for error in validate_rule(rule, config.max_occurrences):
        print(f"warning: {error}", file=sys.stderr)

    expander = LiteRecurrenceExpander(config.max_occurrences, config.recurrence_horizon_days)
    start: date = parse_calendar_date(args.start)
    end: date = parse_calendar_date(args.end)
    for occurrence in expander.expand(start, end, rule):
        print(f"{occurrence.start_date.isoformat()} {occurrence.end_date.isoformat()}")
    return 0


def _cmd_geohash(args: argparse.Namespace, config: Config) -> int:
    from .geo.geohash import decode, encode

    if args.geo_command == "encode":
        print(encode(args.lat, args.lng, args.precision or config.geohash_precision))
        return 0
    point = decode(args.geohash)
    if point is None:
        print(f"Invalid geohash: {args.geohash}", file=sys.stderr)
        return 1
    print(f"{point.lat:.6f},{point.lng:.6f}")
    return 0


def _cmd_ics(args: argparse.Namespace, config: Config) -> int:
    from .export.ics_export import generate_ics
    from .records.lite_models import parse_raw_records

    records = parse_raw_records(_as_list(_read_json(args.path)))
    if args.record_id:
        records = [r for r in records if r.id == args.record_id]
    if not records:
        print("No matching record", file=sys.stderr)
        return 1
    sys.stdout.write(generate_ics(records[0]))
    return 0


_COMMANDS = {
    "resolve": _cmd_resolve,
    "to-instant": _cmd_to_instant,
    "display": _cmd_display,
    "expand": _cmd_expand,
    "geohash": _cmd_geohash,
    "ics": _cmd_ics,
}


def run(argv: Optional[list[str]] = None) -> int:
    """Parse arguments and run one command; returns the exit status."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging(args.log_level or os.environ.get("NOSTRCAL_LOG_LEVEL"))
    config = load_config(args.config)
    if args.viewer_timezone:
        config.viewer_timezone = args.viewer_timezone
    level_name = args.log_level or config.log_level
    configure_lite_logging(debug_mode=level_name.upper() == "DEBUG", log_level=level_name)

    try:
        return _COMMANDS[args.command](args, config)
    except (NostrCalError, ValueError, OSError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main() -> NoReturn:
    """Run the nostrcal_lite CLI."""
    sys.exit(run())


if __name__ == "__main__":
    main()
