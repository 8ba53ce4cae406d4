"""Great-circle distance between two coordinates."""
from __future__ import annotations

import math

from .point import GeoPoint, validate_coordinates

EARTH_RADIUS_MILES = 3959.0
METERS_PER_MILE = 1609.344


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    validate_coordinates(lat1, lng1)
    validate_coordinates(lat2, lng2)

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push ``a`` a hair past 1.0 for antipodal points.
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Return the Haversine distance in miles between two points."""

    return haversine_miles(a.latitude, a.longitude, b.latitude, b.longitude)


def miles_to_meters(miles: float) -> float:
    return float(miles) * METERS_PER_MILE


__all__ = [
    "EARTH_RADIUS_MILES",
    "METERS_PER_MILE",
    "distance_miles",
    "haversine_miles",
    "miles_to_meters",
]
