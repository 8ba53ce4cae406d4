import dataclasses

import pytest

from lead_matcher.errors import InvalidLocation
from lead_matcher.geo import GeoPoint, bounds_for_radius, geohash_of
from lead_matcher.models import TradeProfile, VendorProfile
from lead_matcher.registry import (
    SAMPLE_PROFESSIONALS,
    InMemoryProfessionalRegistry,
    SqliteProfessionalRegistry,
    located_profiles,
)

BOULDER = GeoPoint(40.0150, -105.2705)


@pytest.fixture(params=["memory", "sqlite"])
def registry(request, geocoder, fixed_clock, tmp_path):
    if request.param == "memory":
        yield InMemoryProfessionalRegistry(geocoder=geocoder, clock=fixed_clock)
        return
    backend = SqliteProfessionalRegistry(tmp_path / "registry.db", geocoder=geocoder, clock=fixed_clock)
    yield backend
    backend.close()


def _vendor(**overrides) -> VendorProfile:
    values = {
        "email": "Sales@RockyTile.example",
        "name": "Rocky Tile",
        "zip_code": "80301",
        "product_categories": ["tiles", "stone"],
        "service_radius_miles": 60,
        "rating": 4.9,
        "review_count": 250,
        "verified": True,
    }
    values.update(overrides)
    return VendorProfile(**values)


def test_register_assigns_id_location_and_resets_reputation(registry, fixed_clock) -> None:
    uid = registry.register(_vendor())

    stored = registry.get(uid)
    assert uid.startswith("prof_")
    assert len(uid) == len("prof_") + 12
    assert stored.location == GeoPoint(40.0150, -105.2705)
    assert stored.geohash == geohash_of(stored.location)
    assert stored.verified is False
    assert stored.rating == 0.0
    assert stored.review_count == 0
    assert stored.created_at == fixed_clock()
    assert stored.product_categories == ["tiles", "stone"]


def test_register_rejects_unresolvable_zip(registry) -> None:
    with pytest.raises(InvalidLocation) as excinfo:
        registry.register(_vendor(zip_code="99999"))

    assert excinfo.value.zip_code == "99999"


def test_get_by_email_is_case_insensitive(registry) -> None:
    uid = registry.register(_vendor())

    assert registry.get_by_email("sales@rockytile.example").uid == uid
    assert registry.get_by_email("nobody@example.com") is None


def test_get_unknown_returns_none(registry) -> None:
    assert registry.get("prof_missing") is None


def test_find_candidates_filters_role_status_and_category(registry) -> None:
    for profile in located_profiles():
        registry.upsert(profile)
    registry.update("prof_001", {"status": "suspended"})
    ranges = bounds_for_radius(BOULDER, 100)

    vendors = registry.find_candidates("vendor", ranges, "tiles")
    trades = registry.find_candidates("trade", ranges, "tiles")

    assert [profile.uid for profile in vendors] == []
    assert [profile.uid for profile in trades] == ["prof_002"]
    assert [profile.uid for profile in registry.find_candidates("trade", ranges, "heating")] == ["prof_004"]
    assert registry.find_candidates("trade", ranges, "plumbing") == []


def test_update_re_geocodes_on_zip_change(registry, fixed_clock) -> None:
    uid = registry.register(_vendor())

    updated = registry.update(uid, {"zipCode": "80202", "serviceRadius": 25})

    assert updated.zip_code == "80202"
    assert updated.location == GeoPoint(39.7547, -105.0178)
    assert updated.geohash == geohash_of(updated.location)
    assert updated.service_radius_miles == 25
    assert updated.last_active == fixed_clock()
    assert registry.get(uid).geohash == updated.geohash


def test_update_maps_category_aliases(registry) -> None:
    uid = registry.register(_vendor())

    updated = registry.update(uid, {"categories": ["slabs"]})

    assert updated.product_categories == ["slabs"]


def test_update_rejects_identity_changes_and_unknown_fields(registry) -> None:
    uid = registry.register(_vendor())

    with pytest.raises(ValueError):
        registry.update(uid, {"uid": "prof_other"})
    with pytest.raises(ValueError):
        registry.update(uid, {"role": "trade"})
    with pytest.raises(ValueError):
        registry.update(uid, {"favourite_colour": "teal"})
    with pytest.raises(InvalidLocation):
        registry.update(uid, {"zip_code": "99999"})

    assert registry.update(uid, {"uid": uid}).uid == uid


def test_update_keeps_geohash_derived_from_location(registry) -> None:
    uid = registry.register(_vendor())
    stored = registry.get(uid)

    with pytest.raises(ValueError):
        registry.update(uid, {"geohash": "s000000000"})

    assert registry.get(uid).geohash == stored.geohash
    assert [profile.uid for profile in registry.find_candidates("vendor", bounds_for_radius(BOULDER, 100), "tiles")] == [uid]
    assert registry.update(uid, {"geohash": stored.geohash, "rating": 4.0}).geohash == stored.geohash

    moved = registry.update(uid, {"location": {"latitude": 39.7547, "longitude": -105.0178}, "geohash": ""})
    assert moved.geohash == geohash_of(GeoPoint(39.7547, -105.0178))
    assert registry.get(uid).geohash == moved.geohash


def test_update_unknown_professional_raises_key_error(registry) -> None:
    with pytest.raises(KeyError):
        registry.update("prof_missing", {"status": "suspended"})


def test_upsert_rejects_inconsistent_geohash(registry) -> None:
    profile = located_profiles()[0]

    with pytest.raises(ValueError):
        registry.upsert(dataclasses.replace(profile, geohash="s000000000"))
    with pytest.raises(ValueError):
        registry.upsert(dataclasses.replace(profile, uid=""))


def test_sqlite_registry_persists_across_connections(tmp_path, geocoder) -> None:
    path = tmp_path / "registry.db"
    first = SqliteProfessionalRegistry(path, geocoder=geocoder, profiles=located_profiles())
    first.close()

    second = SqliteProfessionalRegistry(path, geocoder=geocoder)
    try:
        profile = second.get("prof_002")
        assert isinstance(profile, TradeProfile)
        assert profile.trade_categories == ["tiles", "hardwood", "vinyl", "carpet"]
        assert profile.rating == 4.9
        assert len(second.all()) == len(SAMPLE_PROFESSIONALS)
    finally:
        second.close()


def test_located_profiles_skips_unknown_zip(caplog, geocoder) -> None:
    records = [dict(SAMPLE_PROFESSIONALS[0]), dict(SAMPLE_PROFESSIONALS[1], uid="prof_x", zipCode="99999")]

    profiles = located_profiles(records, geocoder=geocoder)

    assert [profile.uid for profile in profiles] == ["prof_001"]
    assert "prof_x" in caplog.text
