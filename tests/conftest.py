from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lead_matcher.geo import Geocoder
from lead_matcher.registry import InMemoryProfessionalRegistry, located_profiles

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def geocoder() -> Geocoder:
    return Geocoder()


@pytest.fixture()
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def sample_registry(geocoder) -> InMemoryProfessionalRegistry:
    return InMemoryProfessionalRegistry(located_profiles(geocoder=geocoder), geocoder=geocoder)
