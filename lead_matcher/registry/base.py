"""Registry protocol and the profile bookkeeping shared by every backend."""
from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..categories import matches_any_category
from ..errors import InvalidLocation
from ..geo.geocoder import Geocoder, NotFound
from ..geo.geohash import geohash_in_ranges, geohash_of
from ..geo.point import GeoPoint
from ..models import AnyProfile, categories_of

LOGGER = logging.getLogger(__name__)

GeohashRanges = Sequence[Tuple[str, str]]
Clock = Callable[[], datetime]

IMMUTABLE_FIELDS = frozenset({"uid", "role"})

_CATEGORY_ALIASES = ("categories", "productCategories", "tradeCategories", "product_categories", "trade_categories")


class ProfessionalRegistry(Protocol):
    """Interface implemented by professional registry backends."""

    def register(self, profile: AnyProfile) -> str:  # pragma: no cover - runtime protocol
        """Geocode and store a new professional, returning its id."""

    def upsert(self, profile: AnyProfile) -> str:  # pragma: no cover - runtime protocol
        """Store a fully formed profile as-is."""

    def get(self, professional_id: str) -> Optional[AnyProfile]:  # pragma: no cover - runtime protocol
        """Return the profile stored under ``professional_id``."""

    def get_by_email(self, email: str) -> Optional[AnyProfile]:  # pragma: no cover - runtime protocol
        """Return the profile registered with ``email``."""

    def find_candidates(
        self, role: str, ranges: GeohashRanges, category: str
    ) -> List[AnyProfile]:  # pragma: no cover - runtime protocol
        """Return active professionals of ``role`` in ``ranges`` offering ``category``."""

    def update(self, professional_id: str, changes: Mapping[str, Any]) -> AnyProfile:  # pragma: no cover
        """Merge ``changes`` into a stored profile and return the result."""


def new_professional_id() -> str:
    return f"prof_{uuid.uuid4().hex[:12]}"


def locate(geocoder: Geocoder, zip_code: str) -> GeoPoint:
    """Resolve ``zip_code`` or raise :class:`InvalidLocation`."""

    resolved = geocoder.resolve(zip_code)
    if isinstance(resolved, NotFound):
        raise InvalidLocation(zip_code, resolved.reason)
    return resolved


def prepare_registration(profile: AnyProfile, geocoder: Geocoder, now: datetime) -> AnyProfile:
    """Return ``profile`` as it should be stored on first registration.

    Self-reported reputation is discarded: new professionals start unverified
    with no rating or reviews.
    """

    location = locate(geocoder, profile.zip_code)
    return dataclasses.replace(
        profile,
        uid=new_professional_id(),
        location=location,
        geohash=geohash_of(location),
        verified=False,
        rating=0.0,
        review_count=0,
        created_at=now,
        last_active=now,
    )


def ensure_geohash(profile: AnyProfile) -> AnyProfile:
    """Fill in a missing geohash and reject one that disagrees with the location."""

    if not profile.uid:
        raise ValueError("Profiles must carry a uid before they can be stored")
    if profile.location is None:
        raise ValueError(f"Profile {profile.uid} has no location")
    expected = geohash_of(profile.location)
    if not profile.geohash:
        return dataclasses.replace(profile, geohash=expected)
    if profile.geohash != expected:
        raise ValueError(
            f"Profile {profile.uid} geohash '{profile.geohash}' does not match its location (expected '{expected}')"
        )
    return profile


def apply_update(profile: AnyProfile, changes: Mapping[str, Any], geocoder: Geocoder, now: datetime) -> AnyProfile:
    """Merge ``changes`` into ``profile``, keeping location and geohash consistent."""

    known = {item.name for item in dataclasses.fields(profile)}
    updates = {}
    for key, value in changes.items():
        name = _field_name(key, profile)
        if name in IMMUTABLE_FIELDS:
            current = profile.uid if name == "uid" else profile.role
            if value != current:
                raise ValueError(f"Field '{name}' cannot be changed (profile {profile.uid})")
            continue
        if name not in known:
            raise ValueError(f"Unknown profile field '{key}'")
        updates[name] = value

    requested_geohash = updates.pop("geohash", None)
    if "location" in updates and isinstance(updates["location"], Mapping):
        updates["location"] = GeoPoint(updates["location"]["latitude"], updates["location"]["longitude"])
    if "zip_code" in updates and updates["zip_code"] != profile.zip_code and "location" not in updates:
        LOGGER.debug("Re-geocoding profile %s for ZIP change %s -> %s", profile.uid, profile.zip_code, updates["zip_code"])
        updates["location"] = locate(geocoder, updates["zip_code"])
    updates["last_active"] = now
    # The geohash is derived from the merged location, never taken from changes.
    updated = ensure_geohash(dataclasses.replace(profile, geohash="", **updates))
    if requested_geohash and requested_geohash != updated.geohash:
        raise ValueError(
            f"Profile {profile.uid} geohash '{requested_geohash}' does not match its location (expected '{updated.geohash}')"
        )
    return updated


def is_candidate(profile: AnyProfile, role: str, ranges: GeohashRanges, category: str, mode: str) -> bool:
    """The candidate predicate every backend applies, in whole or in part."""

    if profile.role != role or not profile.is_active:
        return False
    if not geohash_in_ranges(profile.geohash, ranges):
        return False
    return matches_any_category(categories_of(profile), category, mode, professional_id=profile.uid)


def _field_name(key: str, profile: AnyProfile) -> str:
    if key in _CATEGORY_ALIASES:
        return "product_categories" if profile.role == "vendor" else "trade_categories"
    return _SNAKE_CASE.get(key, key)


_SNAKE_CASE = {
    "businessName": "business_name",
    "zipCode": "zip_code",
    "serviceRadius": "service_radius_miles",
    "serviceRadiusMiles": "service_radius_miles",
    "reviewCount": "review_count",
    "licenseNumber": "license_number",
    "yearsExperience": "years_experience",
    "lastActive": "last_active",
    "createdAt": "created_at",
}


__all__ = [
    "Clock",
    "GeohashRanges",
    "IMMUTABLE_FIELDS",
    "ProfessionalRegistry",
    "apply_update",
    "ensure_geohash",
    "is_candidate",
    "locate",
    "new_professional_id",
    "prepare_registration",
]
