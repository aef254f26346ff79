"""Geohash encoding, great-circle distance and distance sorting - nostrcal_lite.

Geohashes use the standard base-32 alphabet, five bits per character, with
bits alternating between longitude (first) and latitude.
"""

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, NamedTuple, Optional, TypeVar, Union

from ..records.lite_models import RawRecord, RecordView

logger = logging.getLogger(__name__)

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
DEFAULT_PRECISION = 9
EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


class GeoPoint(NamedTuple):
    """Latitude/longitude in decimal degrees."""

    lat: float
    lng: float

    def is_valid(self) -> bool:
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0


def encode(lat: float, lng: float, precision: int = DEFAULT_PRECISION) -> str:
    """Encode a coordinate as a geohash of ``precision`` characters."""
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    chars: list[str] = []
    even_bit = True
    bit = 0
    index = 0

    while len(chars) < precision:
        value, bounds = (lng, lng_range) if even_bit else (lat, lat_range)
        mid = (bounds[0] + bounds[1]) / 2
        if value > mid:
            index |= 1 << (4 - bit)
            bounds[0] = mid
        else:
            bounds[1] = mid
        even_bit = not even_bit

        if bit < 4:
            bit += 1
        else:
            chars.append(BASE32[index])
            bit = 0
            index = 0

    return "".join(chars)


def decode(geohash: Optional[str]) -> Optional[GeoPoint]:
    """Decode a geohash to the centre of its cell.

    Returns:
        GeoPoint, or None for empty input, characters outside the alphabet or
        a result outside valid latitude/longitude ranges
    """
    if not geohash:
        return None
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    even_bit = True

    for char in geohash.strip().lower():
        index = BASE32.find(char)
        if index == -1:
            logger.debug("Invalid geohash character %r in %r", char, geohash)
            return None
        for shift in range(4, -1, -1):
            bounds = lng_range if even_bit else lat_range
            mid = (bounds[0] + bounds[1]) / 2
            if (index >> shift) & 1:
                bounds[0] = mid
            else:
                bounds[1] = mid
            even_bit = not even_bit

    point = GeoPoint((lat_range[0] + lat_range[1]) / 2, (lng_range[0] + lng_range[1]) / 2)
    return point if point.is_valid() else None


def distance(p1: GeoPoint, p2: GeoPoint) -> float:
    """Haversine distance in kilometres on a spherical Earth."""
    d_lat = math.radians(p2.lat - p1.lat)
    d_lng = math.radians(p2.lng - p1.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(p1.lat)) * math.cos(math.radians(p2.lat)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push near-antipodal pairs just past 1
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _parse_pair(lat_text: Optional[str], lng_text: Optional[str]) -> Optional[GeoPoint]:
    if not lat_text or not lng_text:
        return None
    try:
        point = GeoPoint(float(lat_text), float(lng_text))
    except ValueError:
        return None
    if math.isnan(point.lat) or math.isnan(point.lng) or not point.is_valid():
        return None
    return point


def coordinates_for_record(record: Union[RawRecord, RecordView]) -> Optional[GeoPoint]:
    """Location of a record from its ``g`` tag or its ``lat``/``lon`` tags.

    The ``g`` tag normally holds a geohash; a ``"lat,lng"`` pair is also
    accepted because older edit flows wrote that form.
    """
    raw = record.raw if isinstance(record, RecordView) else record
    g_value = raw.tag_value("g")
    if g_value:
        if "," in g_value:
            lat_text, _, lng_text = g_value.partition(",")
            point = _parse_pair(lat_text.strip(), lng_text.strip())
        else:
            point = decode(g_value)
        if point is not None:
            return point
    return _parse_pair(raw.tag_value("lat"), raw.tag_value("lon"))


def format_distance(distance_km: float) -> str:
    """Human readable distance: metres below 1 km, one decimal below 10 km."""
    if distance_km < 1:
        return f"{math.floor(distance_km * 1000 + 0.5)}m"
    if distance_km < 10:
        return f"{distance_km:.1f}km"
    return f"{math.floor(distance_km + 0.5)}km"


@dataclass(frozen=True)
class Ranked(Generic[T]):
    """An item decorated with its distance from a reference point."""

    item: T
    distance: Optional[float]


def sort_by_distance(
    items: Iterable[T],
    origin: GeoPoint,
    locate: Callable[[T], Optional[GeoPoint]] = coordinates_for_record,
) -> list[Ranked[T]]:
    """Sort items nearest first; items without a location go last in input order."""
    ranked = []
    for item in items:
        point = locate(item)
        ranked.append(Ranked(item=item, distance=distance(origin, point) if point is not None else None))
    ranked.sort(key=lambda entry: (entry.distance is None, entry.distance or 0.0))
    return ranked
