"""Unit tests for nostrcal_lite.geo.geohash."""

import math

import pytest

from nostrcal_lite.geo.geohash import (
    EARTH_RADIUS_KM,
    GeoPoint,
    coordinates_for_record,
    decode,
    distance,
    encode,
    format_distance,
    sort_by_distance,
)
from nostrcal_lite.records.lite_models import parse_record

pytestmark = pytest.mark.unit

LONDON = GeoPoint(51.5074, -0.1278)
PARIS = GeoPoint(48.8566, 2.3522)
MADRID = GeoPoint(40.4168, -3.7038)


class TestEncodeDecode:
    @pytest.mark.parametrize(
        ("lat", "lng", "precision", "expected"),
        [
            (42.6, -5.6, 5, "ezs42"),
            (57.64911, 10.40744, 11, "u4pruydqqvj"),
        ],
    )
    def test_known_geohashes(self, lat, lng, precision, expected):
        assert encode(lat, lng, precision) == expected

    def test_default_precision(self):
        assert len(encode(*MADRID)) == 9

    def test_decode_returns_cell_centre(self):
        point = decode("ezs42")

        assert point.lat == pytest.approx(42.6, abs=0.03)
        assert point.lng == pytest.approx(-5.6, abs=0.03)

    @pytest.mark.parametrize("point", [LONDON, PARIS, MADRID, GeoPoint(-33.8688, 151.2093), GeoPoint(0.0, 0.0)])
    def test_nine_characters_stay_within_a_few_metres(self, point):
        decoded = decode(encode(point.lat, point.lng))

        # A 9 character cell is at most 4.8m by 4.8m, so the centre is within its half diagonal
        assert distance(point, decoded) < 0.0035

    def test_decode_is_case_insensitive(self):
        assert decode("EZS42") == decode("ezs42")

    @pytest.mark.parametrize("value", [None, "", "ezs4a", "ilo"])
    def test_invalid_geohash(self, value):
        assert decode(value) is None


class TestDistance:
    def test_zero_to_itself(self):
        assert distance(PARIS, PARIS) == 0

    def test_symmetric(self):
        assert distance(LONDON, MADRID) == pytest.approx(distance(MADRID, LONDON))

    def test_london_to_paris(self):
        assert distance(LONDON, PARIS) == pytest.approx(343.5, abs=2)

    @pytest.mark.parametrize(
        ("p1", "p2"),
        [
            (GeoPoint(82, 178), GeoPoint(-82, -2)),
            (GeoPoint(0, 0), GeoPoint(0, 180)),
            (GeoPoint(90, 0), GeoPoint(-90, 0)),
            (GeoPoint(40.4168, -3.7038), GeoPoint(-40.4168, 176.2962)),
        ],
    )
    def test_antipodal_points_are_half_the_circumference_apart(self, p1, p2):
        assert distance(p1, p2) == pytest.approx(math.pi * EARTH_RADIUS_KM)

    @pytest.mark.parametrize(
        ("km", "expected"),
        [
            (0.85, "850m"),
            (0.0004, "0m"),
            (1.0, "1.0km"),
            (2.5, "2.5km"),
            (12.4, "12km"),
            (343.5, "344km"),
        ],
    )
    def test_format_distance(self, km, expected):
        assert format_distance(km) == expected


class TestRecordCoordinates:
    def test_geohash_tag(self, make_record):
        record = make_record(tags=[["g", "ezs42"]])

        assert coordinates_for_record(record) == decode("ezs42")

    def test_lat_lng_pair_in_g_tag(self, make_record):
        record = make_record(tags=[["g", "40.4168, -3.7038"]])

        assert coordinates_for_record(record) == MADRID

    def test_falls_back_to_lat_lon_tags(self, make_record):
        record = make_record(tags=[["g", "not-a-hash"], ["lat", "48.8566"], ["lon", "2.3522"]])

        assert coordinates_for_record(record) == PARIS

    def test_accepts_typed_views(self, make_record):
        view = parse_record(make_record(tags=[["d", "x"], ["start", "2024-05-05"], ["g", "ezs42"]]))

        assert coordinates_for_record(view) == decode("ezs42")

    @pytest.mark.parametrize(
        "tags",
        [
            [],
            [["g", "91,0"]],
            [["lat", "north"], ["lon", "2.3"]],
            [["lat", "48.8"]],
            [["lat", "nan"], ["lon", "2.3"]],
        ],
    )
    def test_missing_or_invalid_location(self, make_record, tags):
        assert coordinates_for_record(make_record(tags=tags)) is None


class TestSortByDistance:
    def test_nearest_first_unlocated_last(self, make_record):
        madrid = make_record(tags=[["g", encode(*MADRID)]])
        unknown_a = make_record(tags=[["location", "Online"]])
        paris = make_record(tags=[["lat", "48.8566"], ["lon", "2.3522"]])
        unknown_b = make_record(tags=[])

        ranked = sort_by_distance([madrid, unknown_a, paris, unknown_b], LONDON)

        assert [entry.item for entry in ranked] == [paris, madrid, unknown_a, unknown_b]
        assert ranked[0].distance == pytest.approx(343.5, abs=2)
        assert ranked[2].distance is None

    def test_custom_locator(self):
        places = {"paris": PARIS, "madrid": MADRID, "nowhere": None}

        ranked = sort_by_distance(["nowhere", "madrid", "paris"], MADRID, locate=places.get)

        assert [entry.item for entry in ranked] == ["madrid", "paris", "nowhere"]
        assert ranked[0].distance == 0

    def test_antipodal_record_is_ranked(self, make_record):
        far = make_record(tags=[["lat", "-82"], ["lon", "-2"]])
        near = make_record(tags=[["lat", "81"], ["lon", "178"]])

        ranked = sort_by_distance([far, near], GeoPoint(82, 178))

        assert [entry.item for entry in ranked] == [near, far]
        assert ranked[1].distance == pytest.approx(math.pi * EARTH_RADIUS_KM)
