"""Unit tests for nostrcal_lite.temporal.lite_datetime_utils.

Tests wall-clock to instant conversion, timestamp digit-width detection and
display fallbacks. The viewer timezone is pinned to UTC by conftest.
"""

from datetime import date

import pytest

from nostrcal_lite.exceptions import TimestampParseError
from nostrcal_lite.temporal.lite_datetime_utils import (
    WallClock,
    WallClockConverter,
    date_span_contains,
    format_calendar_date,
    normalize_timestamp,
    parse_calendar_date,
    parse_timestamp,
    timezone_abbreviation,
)

pytestmark = pytest.mark.unit

# 2024-05-05 14:00:00 UTC
MADRID_FOUR_PM = 1714917600


class TestToInstant:
    def setup_method(self):
        self.converter = WallClockConverter()

    def test_madrid_afternoon_round_trips(self):
        instant = self.converter.to_instant("2024-05-05", "16:00", "Europe/Madrid")

        assert instant == MADRID_FOUR_PM
        assert self.converter.format_date(instant, "Europe/Madrid") == "2024-05-05"
        assert self.converter.format_time(instant, "Europe/Madrid") == "16:00"

    @pytest.mark.parametrize(
        ("day", "clock", "tz"),
        [
            ("2024-05-05", "16:00", "Europe/Madrid"),
            ("2024-01-15", "00:00", "America/New_York"),
            ("2024-07-01", "23:59", "Asia/Tokyo"),
            ("2024-12-31", "08:30", "Australia/Sydney"),
            ("2024-06-15", "12:45", "Asia/Kolkata"),
            ("2024-02-29", "19:15", "Pacific/Auckland"),
            ("2024-11-20", "05:05", "America/Los_Angeles"),
        ],
    )
    def test_round_trip_reproduces_wall_clock(self, day, clock, tz):
        instant = self.converter.to_instant(day, clock, tz)

        assert self.converter.to_wall_clock(instant, tz) == WallClock(date=day, time=clock)

    @pytest.mark.parametrize("viewer", ["UTC", "Pacific/Honolulu", "Asia/Tokyo"])
    def test_result_does_not_depend_on_viewer_zone(self, viewer):
        converter = WallClockConverter(viewer)

        assert converter.to_instant("2024-05-05", "16:00", "Europe/Madrid") == MADRID_FOUR_PM

    def test_instant_is_snapped_to_minute(self):
        instant = self.converter.to_instant("2024-05-05", "16:07", "Europe/Madrid")

        assert instant % 60 == 0
        assert instant == MADRID_FOUR_PM + 7 * 60

    def test_nonexistent_local_time_returns_instant_before_gap(self):
        # Madrid skips 02:00-03:00 on 2024-03-31
        instant = self.converter.to_instant("2024-03-31", "02:30", "Europe/Madrid")

        assert self.converter.to_wall_clock(instant, "Europe/Madrid") == WallClock("2024-03-31", "01:59")

    def test_missing_time_means_midnight(self):
        instant = self.converter.to_instant("2024-05-05", "", "Europe/Madrid")

        assert self.converter.to_display(instant, "Europe/Madrid") == "2024-05-05 00:00"

    @pytest.mark.parametrize("tz", [None, "", "Mars/Olympus_Mons", "not a zone"])
    def test_invalid_timezone_falls_back_to_viewer(self, tz):
        instant = self.converter.to_instant("2024-05-05", "16:00", tz)

        # Viewer zone is UTC
        assert instant == MADRID_FOUR_PM + 2 * 3600

    @pytest.mark.parametrize(
        ("viewer", "tz"),
        [
            ("Pacific/Kiritimati", "Pacific/Pago_Pago"),
            ("Pacific/Pago_Pago", "Pacific/Kiritimati"),
            ("Etc/GMT-14", "Etc/GMT+12"),
            ("Etc/GMT+12", "Etc/GMT-14"),
        ],
    )
    def test_extreme_offset_pairs_round_trip(self, viewer, tz):
        converter = WallClockConverter(viewer)

        instant = converter.to_instant("2024-05-05", "16:00", tz)

        assert converter.to_wall_clock(instant, tz) == WallClock("2024-05-05", "16:00")

    def test_target_outside_search_window_uses_viewer_local_time(self, caplog):
        class NarrowConverter(WallClockConverter):
            SEARCH_WINDOW_SECONDS = 3600

        instant = NarrowConverter().to_instant("2024-05-05", "16:00", "Asia/Tokyo")

        # 16:00 read in the UTC viewer zone
        assert instant == MADRID_FOUR_PM + 2 * 3600
        assert "outside the search window" in caplog.text

    def test_invalid_date_falls_back_to_now(self, frozen_now):
        assert self.converter.to_instant("2024-13-45", "16:00", "Europe/Madrid") == frozen_now

    def test_invalid_time_falls_back_to_now(self, frozen_now):
        assert self.converter.to_instant("2024-05-05", "noon", "Europe/Madrid") == frozen_now


class TestDisplay:
    def setup_method(self):
        self.converter = WallClockConverter()

    def test_display_in_explicit_zone(self):
        assert self.converter.to_display(MADRID_FOUR_PM, "Europe/Madrid") == "2024-05-05 16:00"
        assert self.converter.to_display(MADRID_FOUR_PM, "America/New_York") == "2024-05-05 10:00"

    @pytest.mark.parametrize("tz", [None, "Invalid/Zone"])
    def test_missing_or_invalid_zone_uses_viewer(self, tz):
        assert self.converter.to_display(MADRID_FOUR_PM, tz) == "2024-05-05 14:00"

    def test_accepts_milliseconds_and_strings(self):
        assert self.converter.to_display(MADRID_FOUR_PM * 1000, "Europe/Madrid") == "2024-05-05 16:00"
        assert self.converter.to_display(str(MADRID_FOUR_PM), "Europe/Madrid") == "2024-05-05 16:00"

    def test_custom_format(self):
        text = self.converter.to_display(MADRID_FOUR_PM, "Europe/Madrid", "%B %d, %Y %I:%M %p")

        assert text == "May 05, 2024 04:00 PM"

    def test_unparseable_timestamp_displays_now(self, frozen_now):
        assert self.converter.to_display("garbage", "UTC") == "2024-05-05 14:00"

    def test_display_range_never_shows_end_before_start(self):
        start, end = self.converter.display_range(MADRID_FOUR_PM, MADRID_FOUR_PM - 3600, "Europe/Madrid")

        assert start == end == "2024-05-05 16:00"

    def test_display_range_renders_both_in_same_zone(self):
        start, end = self.converter.display_range(MADRID_FOUR_PM, MADRID_FOUR_PM + 5400, "Asia/Tokyo", "%H:%M")

        assert (start, end) == ("23:00", "00:30")

    def test_display_range_without_end(self):
        assert self.converter.display_range(MADRID_FOUR_PM, None, "UTC") == ("2024-05-05 14:00", None)

    def test_timezone_abbreviation(self):
        assert timezone_abbreviation("Europe/Madrid", MADRID_FOUR_PM) == "CEST"
        assert timezone_abbreviation("Europe/Madrid", 1704067200) == "CET"
        assert timezone_abbreviation("Nowhere/Land", MADRID_FOUR_PM) == ""
        assert timezone_abbreviation(None) == ""


class TestParseTimestamp:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (MADRID_FOUR_PM, MADRID_FOUR_PM),
            (str(MADRID_FOUR_PM), MADRID_FOUR_PM),
            (f" {MADRID_FOUR_PM} ", MADRID_FOUR_PM),
            (MADRID_FOUR_PM * 1000, MADRID_FOUR_PM),
            (str(MADRID_FOUR_PM * 1000), MADRID_FOUR_PM),
            ("1714917600.5", 1714917600.5),
            (86400, 86400),
            # 11 digits: as seconds this is year 2513, so milliseconds
            (17149176000, 17149176.0),
            # 12 digits or more: always milliseconds
            (171491760000, 171491760.0),
            (100_000_000_000, 100_000_000.0),
            (999_999_999_999, 999_999_999.999),
        ],
    )
    def test_digit_width_detection(self, value, expected):
        assert parse_timestamp(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "soon", "12abc", float("nan"), float("inf"), True, 10**20])
    def test_rejects_unusable_values(self, value):
        with pytest.raises(TimestampParseError):
            parse_timestamp(value)

    def test_unusual_year_only_warns(self, caplog):
        assert parse_timestamp(86400) == 86400
        assert "unusual year" not in caplog.text

        assert parse_timestamp(4200000000) == 4200000000
        assert "unusual year" in caplog.text

    def test_normalize_falls_back_to_now(self, frozen_now):
        assert normalize_timestamp("soon") == frozen_now
        assert normalize_timestamp(MADRID_FOUR_PM) == MADRID_FOUR_PM


class TestCalendarDates:
    def test_parse_calendar_date(self):
        assert parse_calendar_date("2024-05-05") == date(2024, 5, 5)

    @pytest.mark.parametrize("value", ["2024-02-30", "05/05/2024", "", "tomorrow"])
    def test_parse_calendar_date_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            parse_calendar_date(value)

    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            (date(2024, 5, 4), False),
            (date(2024, 5, 5), True),
            (date(2024, 5, 7), True),
            (date(2024, 5, 8), False),
        ],
    )
    def test_span_end_is_inclusive(self, day, expected):
        assert date_span_contains(date(2024, 5, 5), date(2024, 5, 7), day) is expected

    def test_span_without_end_is_single_day(self):
        assert date_span_contains(date(2024, 5, 5), None, date(2024, 5, 5))
        assert not date_span_contains(date(2024, 5, 5), None, date(2024, 5, 6))

    def test_span_with_end_before_start_is_single_day(self):
        assert not date_span_contains(date(2024, 5, 5), date(2024, 5, 1), date(2024, 5, 3))

    def test_format_calendar_date_has_no_timezone_shift(self):
        assert format_calendar_date("2024-05-05") == "May 05, 2024"
        assert format_calendar_date("not-a-date") == "not-a-date"
