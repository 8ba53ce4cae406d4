"""Immutable geographic point."""
from __future__ import annotations

import math
from dataclasses import dataclass

from ..errors import InvalidCoordinates


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise :class:`InvalidCoordinates` unless both values are finite and in range."""

    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinates(f"Coordinates must be numeric, got ({latitude!r}, {longitude!r})") from exc

    if math.isnan(lat) or math.isnan(lng) or math.isinf(lat) or math.isinf(lng):
        raise InvalidCoordinates(f"Coordinates must be finite, got ({latitude!r}, {longitude!r})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinates(f"Latitude {lat} is outside [-90, 90]")
    if not -180.0 <= lng <= 180.0:
        raise InvalidCoordinates(f"Longitude {lng} is outside [-180, 180]")


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A validated latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        validate_coordinates(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


__all__ = ["GeoPoint", "validate_coordinates"]
