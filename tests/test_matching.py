import random

import pytest

from lead_matcher.categories import category_matches
from lead_matcher.geo import GeoPoint, distance_miles
from lead_matcher.matching import RankingPolicy, filter_candidates, find_role_matches, rank_matches
from lead_matcher.models import MatchedProfessional, TradeProfile, VendorProfile
from lead_matcher.registry import InMemoryProfessionalRegistry

BOULDER = GeoPoint(40.0150, -105.2705)
DENVER = GeoPoint(39.7547, -105.0178)


def _profile(role: str, uid: str, location: GeoPoint, categories, *, radius=50.0, rating=4.0, status="active"):
    values = dict(
        email=f"{uid}@example.com",
        name=uid,
        zip_code="00000",
        uid=uid,
        location=location,
        service_radius_miles=radius,
        rating=rating,
        status=status,
    )
    if role == "vendor":
        return VendorProfile(product_categories=list(categories), **values)
    return TradeProfile(trade_categories=list(categories), **values)


class CountingRegistry:
    def __init__(self, registry) -> None:
        self._registry = registry
        self.calls = []

    def find_candidates(self, role, ranges, category):
        self.calls.append((role, category))
        return self._registry.find_candidates(role, ranges, category)


def test_policy_rejects_search_radius_below_service_cap() -> None:
    with pytest.raises(ValueError):
        RankingPolicy(search_radius_miles=50)


def test_policy_rejects_unknown_category_mode() -> None:
    with pytest.raises(ValueError):
        RankingPolicy(category_mode="fuzzy")


def test_rank_score_prefers_close_and_well_rated() -> None:
    policy = RankingPolicy()

    assert policy.rank_score(0.0, 5.0) == 0.0
    assert policy.rank_score(10.0, 4.0) == pytest.approx(7.3)


def test_boulder_tile_lead_finds_local_vendor_and_denver_trade(sample_registry) -> None:
    policy = RankingPolicy()

    vendors = find_role_matches(sample_registry, "vendor", BOULDER, ["tiles"], policy)
    trades = find_role_matches(sample_registry, "trade", BOULDER, ["tiles"], policy)

    assert [match.uid for match in vendors] == ["prof_001"]
    assert vendors[0].distance_miles == pytest.approx(0.0)
    assert [match.uid for match in trades] == ["prof_002"]
    assert 20 < trades[0].distance_miles < 25


def test_service_radius_is_the_professionals_own(sample_registry) -> None:
    # Colorado Springs (80 mi radius) sits about 85 mi from Boulder but 65 mi from Denver.
    policy = RankingPolicy()

    from_boulder = find_role_matches(sample_registry, "vendor", BOULDER, ["stone"], policy)
    from_denver = find_role_matches(sample_registry, "vendor", DENVER, ["stone"], policy)

    assert "prof_005" not in [match.uid for match in from_boulder]
    assert [match.uid for match in from_denver] == ["prof_001", "prof_005"]


def test_no_categories_skips_the_registry(sample_registry) -> None:
    registry = CountingRegistry(sample_registry)

    assert find_role_matches(registry, "vendor", BOULDER, [], RankingPolicy()) == []
    assert registry.calls == []


def test_candidates_are_unioned_across_categories(sample_registry) -> None:
    registry = CountingRegistry(sample_registry)

    matches = find_role_matches(registry, "vendor", BOULDER, ["tiles", "stone"], RankingPolicy())

    assert registry.calls == [("vendor", "tiles"), ("vendor", "stone")]
    assert [match.uid for match in matches] == ["prof_001"]


def test_filter_drops_inactive_wrong_role_and_out_of_range() -> None:
    policy = RankingPolicy()
    candidates = [
        _profile("vendor", "keep", DENVER, ["tiles"]),
        _profile("vendor", "suspended", DENVER, ["tiles"], status="suspended"),
        _profile("trade", "wrong-role", DENVER, ["tiles"]),
        _profile("vendor", "too-far", DENVER, ["tiles"], radius=10),
        _profile("vendor", "wrong-category", DENVER, ["carpet"]),
    ]

    kept = filter_candidates(candidates, "vendor", BOULDER, ["tiles"], policy)

    assert [match.uid for match in kept] == ["keep"]


def test_ranking_breaks_ties_on_uid() -> None:
    policy = RankingPolicy()
    profile_b = _profile("vendor", "b", DENVER, ["tiles"])
    profile_a = _profile("vendor", "a", DENVER, ["tiles"])
    matches = [MatchedProfessional(profile_b, 5.0, 3.8), MatchedProfessional(profile_a, 5.0, 3.8)]

    assert [match.uid for match in rank_matches(matches, policy)] == ["a", "b"]


def test_ranking_is_capped_per_role() -> None:
    profiles = [
        _profile("vendor", f"v{index:02d}", BOULDER, ["tiles"], rating=float(index % 6))
        for index in range(15)
    ]
    registry = InMemoryProfessionalRegistry(profiles)

    matches = find_role_matches(registry, "vendor", BOULDER, ["tiles"], RankingPolicy(max_results=10))

    assert len(matches) == 10
    scores = [match.rank_score for match in matches]
    assert scores == sorted(scores)
    assert matches[0].profile.rating == 5.0


def test_matches_equal_brute_force_filter() -> None:
    rng = random.Random(42)
    profiles = []
    for index in range(300):
        location = GeoPoint(DENVER.latitude + rng.uniform(-2.5, 2.5), DENVER.longitude + rng.uniform(-3.0, 3.0))
        profiles.append(
            _profile(
                rng.choice(["vendor", "trade"]),
                f"p{index:03d}",
                location,
                rng.sample(["tiles", "stone", "hardwood", "vinyl", "carpet"], k=2),
                radius=rng.uniform(5, 100),
                rating=round(rng.uniform(0, 5), 1),
                status="active" if rng.random() > 0.1 else "suspended",
            )
        )
    registry = InMemoryProfessionalRegistry(profiles)
    policy = RankingPolicy(max_results=1000)

    for origin in (DENVER, BOULDER, GeoPoint(39.0, -104.5)):
        for role in ("vendor", "trade"):
            expected = {
                profile.uid
                for profile in profiles
                if profile.role == role
                and profile.is_active
                and any(
                    category_matches(offered, "stone")
                    for offered in (profile.product_categories if role == "vendor" else profile.trade_categories)
                )
                and distance_miles(origin, profile.location) <= profile.service_radius_miles
            }

            matches = find_role_matches(registry, role, origin, ["stone"], policy)

            assert {match.uid for match in matches} == expected
            for match in matches:
                assert match.distance_miles <= match.profile.service_radius_miles
