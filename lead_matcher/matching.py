"""Filter and rank professionals for a single role.

Both the primary engine and the fallback matcher call :func:`find_role_matches`;
the only thing that differs between the two paths is the registry passed in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .categories import CATEGORY_MODES, TOKEN, matches_any_category
from .geo.distance import distance_miles
from .geo.geohash import bounds_for_radius
from .geo.point import GeoPoint
from .models import MAX_RATING, MAX_SERVICE_RADIUS_MILES, AnyProfile, MatchedProfessional, categories_of

LOGGER = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS_MILES = 100.0
DEFAULT_DISTANCE_WEIGHT = 0.7
DEFAULT_RATING_WEIGHT = 0.3
DEFAULT_MAX_RESULTS = 10


@dataclass(frozen=True)
class RankingPolicy:
    """Tunable parameters for the filter/rank step.

    Ranking sorts ascending on ``distance_weight * miles +
    rating_weight * (5 - rating)``, so closer and better-rated professionals
    come first. Ties break on the professional id.
    """

    search_radius_miles: float = DEFAULT_SEARCH_RADIUS_MILES
    distance_weight: float = DEFAULT_DISTANCE_WEIGHT
    rating_weight: float = DEFAULT_RATING_WEIGHT
    max_results: int = DEFAULT_MAX_RESULTS
    category_mode: str = TOKEN

    def __post_init__(self) -> None:
        if self.search_radius_miles < MAX_SERVICE_RADIUS_MILES:
            raise ValueError(
                f"search_radius_miles ({self.search_radius_miles}) must be at least the maximum "
                f"service radius ({MAX_SERVICE_RADIUS_MILES:g}) or in-range professionals are missed"
            )
        if self.max_results < 1:
            raise ValueError(f"max_results must be positive, got {self.max_results}")
        if self.category_mode not in CATEGORY_MODES:
            raise ValueError(f"Unknown category mode '{self.category_mode}'. Expected one of {CATEGORY_MODES}")

    def rank_score(self, distance: float, rating: float) -> float:
        return self.distance_weight * distance + self.rating_weight * (MAX_RATING - rating)


def find_role_matches(
    registry,
    role: str,
    origin: GeoPoint,
    categories: Sequence[str],
    policy: RankingPolicy,
) -> List[MatchedProfessional]:
    """Query ``registry`` for ``role`` around ``origin`` and return ranked matches.

    Registry errors propagate unchanged so the caller can decide whether to
    fall back.
    """

    if not categories:
        return []

    ranges = bounds_for_radius(origin, policy.search_radius_miles)
    candidates: Dict[str, AnyProfile] = {}
    for category in categories:
        for profile in registry.find_candidates(role, ranges, category):
            candidates.setdefault(profile.uid, profile)

    LOGGER.debug(
        "Registry returned %s %s candidates for %s across %s geohash ranges",
        len(candidates),
        role,
        list(categories),
        len(ranges),
    )
    return rank_matches(filter_candidates(candidates.values(), role, origin, categories, policy), policy)


def filter_candidates(
    candidates: Iterable[AnyProfile],
    role: str,
    origin: GeoPoint,
    categories: Sequence[str],
    policy: RankingPolicy,
) -> List[MatchedProfessional]:
    """Keep candidates of ``role`` that cover a category and serve ``origin``."""

    kept: List[MatchedProfessional] = []
    for profile in candidates:
        if profile.role != role or not profile.is_active or profile.location is None:
            continue
        offered = categories_of(profile)
        if not any(matches_any_category(offered, requested, policy.category_mode) for requested in categories):
            continue
        distance = distance_miles(origin, profile.location)
        if distance > profile.service_radius_miles:
            LOGGER.debug(
                "Dropping %s: %.1f mi exceeds service radius %.1f mi",
                profile.uid,
                distance,
                profile.service_radius_miles,
            )
            continue
        kept.append(
            MatchedProfessional(
                profile=profile,
                distance_miles=distance,
                rank_score=policy.rank_score(distance, profile.rating),
            )
        )
    return kept


def rank_matches(matches: Iterable[MatchedProfessional], policy: RankingPolicy) -> List[MatchedProfessional]:
    ordered = sorted(matches, key=lambda match: (match.rank_score, match.uid))
    return ordered[: policy.max_results]


__all__ = [
    "DEFAULT_SEARCH_RADIUS_MILES",
    "RankingPolicy",
    "filter_candidates",
    "find_role_matches",
    "rank_matches",
]
