"""Unit tests for nostrcal_lite.core.timezone_utils."""

import datetime
import zoneinfo

import pytest
from dateutil import tz as dateutil_tz

from nostrcal_lite.core.timezone_utils import (
    TEST_TIME_ENV,
    VIEWER_TIMEZONE_ENV,
    ViewerTimezone,
    get_viewer_tzinfo,
    is_valid_timezone,
    now_epoch,
    now_utc,
)

pytestmark = pytest.mark.unit


class TestIsValidTimezone:
    @pytest.mark.parametrize("name", ["Europe/Madrid", "America/New_York", "UTC", "Asia/Kolkata"])
    def test_known_zones(self, name):
        assert is_valid_timezone(name) is True

    @pytest.mark.parametrize("name", [None, "", "Mars/Olympus_Mons", "../etc/passwd", "Not A Zone", 42])
    def test_unknown_or_malformed(self, name):
        assert is_valid_timezone(name) is False


class TestViewerTimezone:
    def test_configured_zone_wins(self):
        viewer = ViewerTimezone("Asia/Tokyo")

        assert viewer.name == "Asia/Tokyo"
        assert viewer.tzinfo() == zoneinfo.ZoneInfo("Asia/Tokyo")

    def test_environment_zone(self, monkeypatch):
        monkeypatch.setenv(VIEWER_TIMEZONE_ENV, "Europe/Madrid")

        assert ViewerTimezone().name == "Europe/Madrid"

    def test_invalid_zone_uses_host_local_time(self, monkeypatch, caplog):
        monkeypatch.setenv(VIEWER_TIMEZONE_ENV, "Mars/Olympus_Mons")

        viewer = ViewerTimezone()

        assert viewer.name is None
        assert isinstance(viewer.tzinfo(), dateutil_tz.tzlocal)
        assert "Invalid viewer timezone" in caplog.text

    def test_unset_zone_uses_host_local_time(self, monkeypatch):
        monkeypatch.delenv(VIEWER_TIMEZONE_ENV)

        assert isinstance(get_viewer_tzinfo(), dateutil_tz.tzlocal)


class TestNow:
    def test_frozen_time(self, frozen_now):
        assert now_utc() == datetime.datetime(2024, 5, 5, 14, 0, tzinfo=datetime.timezone.utc)
        assert now_epoch() == frozen_now

    def test_offset_test_time_is_converted_to_utc(self, monkeypatch):
        monkeypatch.setenv(TEST_TIME_ENV, "2024-05-05T16:00:00+02:00")

        assert now_utc().hour == 14
        assert now_utc().tzinfo == datetime.timezone.utc

    def test_naive_test_time_is_utc(self, monkeypatch):
        monkeypatch.setenv(TEST_TIME_ENV, "2024-05-05T14:00:00")

        assert now_epoch() == 1714917600

    def test_invalid_test_time_uses_real_clock(self, monkeypatch, caplog):
        monkeypatch.setenv(TEST_TIME_ENV, "yesterday-ish")

        now = now_utc()

        assert now.tzinfo == datetime.timezone.utc
        assert now.year >= 2024
        assert "Failed to parse" in caplog.text
