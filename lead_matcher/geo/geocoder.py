"""Static ZIP code geocoder."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from ..errors import InvalidCoordinates
from .point import GeoPoint

LOGGER = logging.getLogger(__name__)

_ZIP_PATTERN = re.compile(r"^(\d{5})(?:[-\s]?\d{4})?$")

# Coverage for the launch markets plus the major metros used by the sample
# professionals. Extend through :meth:`Geocoder.extend` or a ZIP table file.
DEFAULT_ZIP_TABLE: Mapping[str, Tuple[float, float]] = {
    # Arizona
    "85001": (33.4484, -112.0740),
    "85002": (33.4734, -112.0876),
    "85003": (33.4455, -112.0952),
    "85004": (33.4734, -112.0550),
    "85005": (33.4269, -112.0740),
    "85006": (33.4019, -112.0740),
    "85007": (33.3953, -112.0740),
    "85008": (33.3684, -112.0740),
    "85009": (33.4019, -112.1206),
    "85010": (33.3953, -112.1206),
    "85251": (33.4990, -111.9193),
    "85281": (33.4200, -111.9300),
    "85301": (33.5387, -112.1859),
    "85336": (33.1931, -111.6537),
    "86001": (35.2000, -111.6500),
    "86004": (35.2100, -111.8200),
    "86301": (34.5400, -112.4700),
    # California
    "90024": (34.0628, -118.4426),
    "90210": (34.0901, -118.4065),
    "90211": (34.0823, -118.4009),
    "91101": (34.1478, -118.1445),
    "92101": (32.7157, -117.1611),
    "94102": (37.7749, -122.4194),
    # Colorado
    "80202": (39.7547, -105.0178),
    "80301": (40.0150, -105.2705),
    "80424": (39.4797, -106.0444),
    "80904": (38.8339, -104.8214),
    "81224": (38.8675, -106.0884),
    "81301": (37.2753, -107.8801),
    "81435": (37.9358, -107.8123),
    "81615": (39.6403, -106.3781),
    "81620": (39.1911, -106.8175),
    # Florida
    "32801": (28.5383, -81.3792),
    "33101": (25.7617, -80.1918),
    "33102": (25.7814, -80.1398),
    "33139": (25.7907, -80.1300),
    "33301": (26.1224, -80.1373),
    # Texas
    "75201": (32.7811, -96.7972),
    "75202": (32.7767, -96.8089),
    "77001": (29.7604, -95.3698),
    "78701": (30.2672, -97.7431),
    # New York
    "10001": (40.7505, -73.9934),
    "10002": (40.7209, -73.9876),
    "11201": (40.6928, -73.9903),
    # Illinois
    "60601": (41.8781, -87.6298),
    "60602": (41.8794, -87.6392),
    "60611": (41.8918, -87.6224),
    # Georgia
    "30301": (33.7490, -84.3880),
    "30302": (33.7751, -84.3963),
    "30303": (33.7490, -84.3880),
    "30309": (33.7901, -84.3902),
    # Washington
    "98101": (47.6062, -122.3321),
    "98102": (47.6237, -122.3017),
    # Massachusetts
    "02101": (42.3601, -71.0589),
    "02108": (42.3751, -71.0603),
}


@dataclass(frozen=True, slots=True)
class NotFound:
    """Typed outcome for ZIP codes the geocoder cannot resolve."""

    zip_code: Optional[str]
    reason: str = "unknown ZIP code"

    def __bool__(self) -> bool:
        return False


GeocodeResult = Union[GeoPoint, NotFound]


def normalize_zip(value: object) -> Optional[str]:
    """Return a 5-digit ZIP code or ``None`` when ``value`` is not one.

    Accepts ZIP+4 (``80301-1234``) and numeric values that lost their leading
    zero to spreadsheet coercion (``2108`` or ``2108.0``).
    """

    if value is None:
        return None
    if isinstance(value, float):
        if value != value or not value.is_integer():
            return None
        value = int(value)
    text = str(value).strip()
    if text.isdigit() and 3 <= len(text) < 5:
        text = text.zfill(5)
    match = _ZIP_PATTERN.match(text)
    if not match:
        return None
    return match.group(1)


class Geocoder:
    """Resolve postal codes to coordinates using a static lookup table."""

    def __init__(self, table: Optional[Mapping[str, Tuple[float, float]]] = None) -> None:
        self._table: Dict[str, GeoPoint] = {}
        self.extend(DEFAULT_ZIP_TABLE if table is None else table)

    def __contains__(self, zip_code: object) -> bool:
        normalized = normalize_zip(zip_code)
        return normalized is not None and normalized in self._table

    def __len__(self) -> int:
        return len(self._table)

    def extend(self, table: Union[Mapping[str, Tuple[float, float]], Iterable[Tuple[str, float, float]]]) -> int:
        """Add or replace entries; returns the number of rows accepted."""

        rows = (
            ((zip_code, lat, lng) for zip_code, (lat, lng) in table.items())
            if isinstance(table, Mapping)
            else table
        )
        accepted = 0
        for zip_code, latitude, longitude in rows:
            normalized = normalize_zip(zip_code)
            if normalized is None:
                LOGGER.warning("Ignoring malformed ZIP code %r in geocoder table", zip_code)
                continue
            try:
                self._table[normalized] = GeoPoint(latitude, longitude)
            except InvalidCoordinates as exc:
                LOGGER.warning("Ignoring ZIP code %s with invalid coordinates: %s", normalized, exc)
                continue
            accepted += 1
        return accepted

    def resolve(self, zip_code: object) -> GeocodeResult:
        normalized = normalize_zip(zip_code)
        if normalized is None:
            return NotFound(zip_code=None if zip_code is None else str(zip_code), reason="malformed ZIP code")
        point = self._table.get(normalized)
        if point is None:
            return NotFound(zip_code=normalized)
        return point


__all__ = ["DEFAULT_ZIP_TABLE", "GeocodeResult", "Geocoder", "NotFound", "normalize_zip"]
