"""Geocoding, distance, and geohash helpers."""

from .distance import EARTH_RADIUS_MILES, distance_miles, haversine_miles  # noqa: F401
from .geocoder import Geocoder, GeocodeResult, NotFound, normalize_zip  # noqa: F401
from .geohash import bounds_for_radius, decode_geohash, geohash_in_ranges, geohash_of  # noqa: F401
from .point import GeoPoint  # noqa: F401

__all__ = [
    "EARTH_RADIUS_MILES",
    "GeoPoint",
    "Geocoder",
    "GeocodeResult",
    "NotFound",
    "bounds_for_radius",
    "decode_geohash",
    "distance_miles",
    "geohash_in_ranges",
    "geohash_of",
    "haversine_miles",
    "normalize_zip",
]
