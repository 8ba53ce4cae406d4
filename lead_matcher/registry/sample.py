"""Sample professionals used to seed the fallback registry and local demos."""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from ..geo.geocoder import Geocoder, NotFound
from ..geo.geohash import geohash_of
from ..models import AnyProfile, ProfessionalProfile, profile_from_mapping
from .base import new_professional_id

LOGGER = logging.getLogger(__name__)

SAMPLE_PROFESSIONALS: Sequence[Mapping[str, Any]] = (
    # Colorado
    {
        "uid": "prof_001",
        "role": "vendor",
        "email": "rockymountaintile@gmail.com",
        "name": "Rocky Mountain Tile Supply",
        "businessName": "Rocky Mountain Tile Supply",
        "phone": "(303) 555-0123",
        "zipCode": "80301",
        "serviceRadius": 75,
        "productCategories": ["tiles", "stone", "slabs"],
        "specialty": "Natural stone and ceramic tiles",
        "yearsExperience": 12,
        "verified": True,
        "rating": 4.8,
        "reviewCount": 156,
    },
    {
        "uid": "prof_002",
        "role": "trade",
        "email": "denverflooringpro@gmail.com",
        "name": "Denver Flooring Professionals",
        "businessName": "Denver Flooring Professionals",
        "phone": "(303) 555-0124",
        "zipCode": "80202",
        "serviceRadius": 50,
        "tradeCategories": ["tiles", "hardwood", "vinyl", "carpet"],
        "specialty": "Residential and commercial flooring installation",
        "licenseNumber": "FL-2024-789",
        "yearsExperience": 8,
        "verified": True,
        "rating": 4.9,
        "reviewCount": 98,
    },
    {
        "uid": "prof_003",
        "role": "vendor",
        "email": "avonflooring@gmail.com",
        "name": "Avon Flooring Center",
        "businessName": "Avon Flooring Center",
        "phone": "(970) 555-0125",
        "zipCode": "81620",
        "serviceRadius": 60,
        "productCategories": ["hardwood", "vinyl", "carpet"],
        "specialty": "Mountain luxury flooring",
        "yearsExperience": 15,
        "verified": True,
        "rating": 4.7,
        "reviewCount": 73,
    },
    {
        "uid": "prof_004",
        "role": "trade",
        "email": "vailheating@gmail.com",
        "name": "Vail Heating Solutions",
        "businessName": "Vail Heating Solutions",
        "phone": "(970) 555-0126",
        "zipCode": "81615",
        "serviceRadius": 40,
        "tradeCategories": ["heating", "thermostats"],
        "specialty": "Radiant floor heating systems",
        "licenseNumber": "HV-2024-456",
        "yearsExperience": 20,
        "verified": True,
        "rating": 5.0,
        "reviewCount": 45,
    },
    {
        "uid": "prof_005",
        "role": "vendor",
        "email": "coloradostone@gmail.com",
        "name": "Colorado Stone Works",
        "businessName": "Colorado Stone Works",
        "phone": "(303) 555-0127",
        "zipCode": "80904",
        "serviceRadius": 80,
        "productCategories": ["stone", "slabs", "tiles"],
        "specialty": "Natural stone countertops and flooring",
        "yearsExperience": 18,
        "verified": True,
        "rating": 4.6,
        "reviewCount": 124,
    },
    # National coverage
    {
        "uid": "prof_006",
        "role": "vendor",
        "email": "nationaltileco@gmail.com",
        "name": "National Tile Company",
        "businessName": "National Tile Company",
        "phone": "(800) 555-0128",
        "zipCode": "10001",
        "serviceRadius": 100,
        "productCategories": ["tiles", "stone", "slabs"],
        "specialty": "Commercial and residential tile supply",
        "yearsExperience": 25,
        "verified": True,
        "rating": 4.5,
        "reviewCount": 312,
    },
    {
        "uid": "prof_007",
        "role": "trade",
        "email": "eliteflooringny@gmail.com",
        "name": "Elite Flooring NYC",
        "businessName": "Elite Flooring NYC",
        "phone": "(212) 555-0129",
        "zipCode": "10001",
        "serviceRadius": 50,
        "tradeCategories": ["tiles", "hardwood", "vinyl"],
        "specialty": "High-end residential flooring",
        "licenseNumber": "NY-2024-123",
        "yearsExperience": 12,
        "verified": True,
        "rating": 4.8,
        "reviewCount": 89,
    },
    {
        "uid": "prof_008",
        "role": "vendor",
        "email": "calstonesupp@gmail.com",
        "name": "California Stone Supply",
        "businessName": "California Stone Supply",
        "phone": "(310) 555-0130",
        "zipCode": "90210",
        "serviceRadius": 75,
        "productCategories": ["stone", "slabs", "tiles"],
        "specialty": "Premium natural stone and engineered surfaces",
        "yearsExperience": 22,
        "verified": True,
        "rating": 4.7,
        "reviewCount": 198,
    },
    {
        "uid": "prof_009",
        "role": "trade",
        "email": "miamiflooringpro@gmail.com",
        "name": "Miami Flooring Professionals",
        "businessName": "Miami Flooring Professionals",
        "phone": "(305) 555-0131",
        "zipCode": "33101",
        "serviceRadius": 60,
        "tradeCategories": ["tiles", "vinyl", "carpet"],
        "specialty": "Tropical climate flooring solutions",
        "licenseNumber": "FL-2024-567",
        "yearsExperience": 14,
        "verified": True,
        "rating": 4.6,
        "reviewCount": 67,
    },
    {
        "uid": "prof_010",
        "role": "vendor",
        "email": "texashardwood@gmail.com",
        "name": "Texas Hardwood Specialists",
        "businessName": "Texas Hardwood Specialists",
        "phone": "(713) 555-0132",
        "zipCode": "77001",
        "serviceRadius": 90,
        "productCategories": ["hardwood", "vinyl"],
        "specialty": "Exotic and domestic hardwood flooring",
        "yearsExperience": 16,
        "verified": True,
        "rating": 4.9,
        "reviewCount": 145,
    },
)


def located_profiles(
    records: Sequence[Union[Mapping[str, Any], AnyProfile]] = SAMPLE_PROFESSIONALS,
    geocoder: Optional[Geocoder] = None,
) -> List[AnyProfile]:
    """Build storable profiles from ``records``.

    Profiles without a location are geocoded from their ZIP code and those
    without an id get a fresh one. Records whose ZIP cannot be resolved are
    skipped with a warning. Reputation fields are kept as given, unlike
    registration.
    """

    geocoder = geocoder or Geocoder()
    profiles: List[AnyProfile] = []
    for record in records:
        profile = record if isinstance(record, ProfessionalProfile) else profile_from_mapping(record)
        if not profile.uid:
            profile = dataclasses.replace(profile, uid=new_professional_id())
        if profile.location is None:
            resolved = geocoder.resolve(profile.zip_code)
            if isinstance(resolved, NotFound):
                LOGGER.warning("Skipping professional %s: %s", profile.uid, resolved.reason)
                continue
            profile = dataclasses.replace(profile, location=resolved, geohash=geohash_of(resolved))
        profiles.append(profile)
    return profiles


__all__ = ["SAMPLE_PROFESSIONALS", "located_profiles"]
