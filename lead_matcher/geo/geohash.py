"""Geohash encoding and range bounds for proximity pre-filtering.

A geohash interleaves longitude and latitude bisection bits and encodes them
five at a time in base 32, so points that share a prefix share a cell.
:func:`bounds_for_radius` returns lexicographic ``(low, high)`` ranges whose
union covers a disc around a centre point. The ranges over-approximate the
disc: anything pulled from a range query must still be checked with
:func:`lead_matcher.geo.distance.distance_miles`.
"""
from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

from .distance import miles_to_meters
from .point import GeoPoint

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
DEFAULT_PRECISION = 10
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

# Sentinel sorting after every base-32 character; closes an open-ended range.
RANGE_END = "~"

_EARTH_MERIDIONAL_CIRCUMFERENCE = 40007860.0
_METERS_PER_DEGREE_LATITUDE = 110574.0
_EARTH_EQUATORIAL_RADIUS = 6378137.0
_EARTH_ECCENTRICITY_SQUARED = 0.00669447819799
_EPSILON = 1e-12

# Distances are Haversine on a sphere while the bounding box below follows the
# WGS84 ellipsoid; the two disagree by under 0.5%, so the box radius is padded.
_COVERAGE_MARGIN = 1.01

GeohashRange = Tuple[str, str]


def geohash_of(point: GeoPoint, precision: int = DEFAULT_PRECISION) -> str:
    """Encode ``point`` as a geohash of ``precision`` characters."""

    if precision < 1 or precision > 22:
        raise ValueError(f"Geohash precision must be between 1 and 22, got {precision}")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    chars: List[str] = []
    value = 0
    bits = 0
    even = True

    while len(chars) < precision:
        coordinate = point.longitude if even else point.latitude
        bounds = lng_range if even else lat_range
        mid = (bounds[0] + bounds[1]) / 2
        if coordinate > mid:
            value = (value << 1) + 1
            bounds[0] = mid
        else:
            value <<= 1
            bounds[1] = mid
        even = not even
        if bits < BITS_PER_CHAR - 1:
            bits += 1
        else:
            chars.append(BASE32[value])
            bits = 0
            value = 0

    return "".join(chars)


def decode_geohash(geohash: str) -> GeoPoint:
    """Return the centre of the cell described by ``geohash``."""

    if not geohash:
        raise ValueError("Cannot decode an empty geohash")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    even = True
    for char in geohash.lower():
        index = BASE32.find(char)
        if index < 0:
            raise ValueError(f"Invalid geohash character {char!r} in {geohash!r}")
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bit = (index >> shift) & 1
            bounds = lng_range if even else lat_range
            mid = (bounds[0] + bounds[1]) / 2
            if bit:
                bounds[0] = mid
            else:
                bounds[1] = mid
            even = not even

    return GeoPoint(
        latitude=(lat_range[0] + lat_range[1]) / 2,
        longitude=(lng_range[0] + lng_range[1]) / 2,
    )


def bounds_for_radius(center: GeoPoint, radius_miles: float) -> List[GeohashRange]:
    """Return deduplicated geohash ranges covering a disc of ``radius_miles``."""

    if radius_miles <= 0:
        raise ValueError(f"Search radius must be positive, got {radius_miles}")

    radius = miles_to_meters(radius_miles) * _COVERAGE_MARGIN
    query_bits = max(1, _bounding_box_bits(center, radius))
    precision = math.ceil(query_bits / BITS_PER_CHAR)

    ranges: List[GeohashRange] = []
    for corner in _bounding_box_points(center, radius):
        candidate = _range_for_prefix(geohash_of(corner, precision), query_bits)
        if candidate not in ranges:
            ranges.append(candidate)
    return ranges


def geohash_in_ranges(geohash: str, ranges: Iterable[Sequence[str]]) -> bool:
    """Return ``True`` when ``geohash`` falls inside any inclusive range."""

    return any(low <= geohash <= high for low, high in ranges)


# ------------------------------------------------------------------
# Helpers
def _meters_to_longitude_degrees(distance: float, latitude: float) -> float:
    radians = math.radians(latitude)
    numerator = math.cos(radians) * _EARTH_EQUATORIAL_RADIUS * math.pi / 180
    denominator = 1 / math.sqrt(1 - _EARTH_ECCENTRICITY_SQUARED * math.sin(radians) ** 2)
    delta_degrees = numerator * denominator
    if delta_degrees < _EPSILON:
        return 360.0 if distance > 0 else 0.0
    return min(360.0, distance / delta_degrees)


def _longitude_bits_for_resolution(resolution: float, latitude: float) -> float:
    degrees = _meters_to_longitude_degrees(resolution, latitude)
    if abs(degrees) > 0.000001:
        return max(1.0, math.log2(360 / degrees))
    return 1.0


def _latitude_bits_for_resolution(resolution: float) -> float:
    return min(math.log2(_EARTH_MERIDIONAL_CIRCUMFERENCE / 2 / resolution), MAXIMUM_BITS_PRECISION)


def _wrap_longitude(longitude: float) -> float:
    if -180 <= longitude <= 180:
        return longitude
    adjusted = longitude + 180
    if adjusted > 0:
        return (adjusted % 360) - 180
    return 180 - (-adjusted % 360)


def _bounding_box_bits(center: GeoPoint, size: float) -> int:
    lat_delta = size / _METERS_PER_DEGREE_LATITUDE
    latitude_north = min(90.0, center.latitude + lat_delta)
    latitude_south = max(-90.0, center.latitude - lat_delta)
    bits_lat = math.floor(_latitude_bits_for_resolution(size)) * 2
    bits_long_north = math.floor(_longitude_bits_for_resolution(size, latitude_north)) * 2 - 1
    bits_long_south = math.floor(_longitude_bits_for_resolution(size, latitude_south)) * 2 - 1
    return min(bits_lat, bits_long_north, bits_long_south, MAXIMUM_BITS_PRECISION)


def _bounding_box_points(center: GeoPoint, radius: float) -> List[GeoPoint]:
    lat_degrees = radius / _METERS_PER_DEGREE_LATITUDE
    latitude_north = min(90.0, center.latitude + lat_degrees)
    latitude_south = max(-90.0, center.latitude - lat_degrees)
    long_degrees = max(
        _meters_to_longitude_degrees(radius, latitude_north),
        _meters_to_longitude_degrees(radius, latitude_south),
    )
    west = _wrap_longitude(center.longitude - long_degrees)
    east = _wrap_longitude(center.longitude + long_degrees)

    points: List[GeoPoint] = []
    for latitude in (center.latitude, latitude_north, latitude_south):
        for longitude in (center.longitude, west, east):
            points.append(GeoPoint(latitude, longitude))
    return points


def _range_for_prefix(geohash: str, bits: int) -> GeohashRange:
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return (geohash, geohash + RANGE_END)

    geohash = geohash[:precision]
    base = geohash[:-1]
    last_value = BASE32.index(geohash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits
    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return (base + BASE32[start_value], base + RANGE_END)
    return (base + BASE32[start_value], base + BASE32[end_value])


__all__ = [
    "BASE32",
    "DEFAULT_PRECISION",
    "GeohashRange",
    "bounds_for_radius",
    "decode_geohash",
    "geohash_in_ranges",
    "geohash_of",
]
