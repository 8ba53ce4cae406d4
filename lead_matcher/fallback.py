"""Degraded-mode matcher backed by a local in-memory registry."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .geo.geocoder import Geocoder
from .geo.point import GeoPoint
from .matching import RankingPolicy, find_role_matches
from .models import AnyProfile, MatchedProfessional
from .registry.memory import InMemoryProfessionalRegistry
from .registry.sample import located_profiles

LOGGER = logging.getLogger(__name__)


class FallbackMatcher:
    """Answers role queries from a local registry when the primary one is down.

    Seeded with the bundled sample professionals unless ``profiles`` is given.
    Filtering and ranking go through :func:`find_role_matches`, exactly as on
    the primary path.
    """

    name = "fallback"

    def __init__(
        self,
        profiles: Optional[Iterable[AnyProfile]] = None,
        *,
        policy: Optional[RankingPolicy] = None,
        geocoder: Optional[Geocoder] = None,
    ) -> None:
        self._policy = policy or RankingPolicy()
        if profiles is None:
            profiles = located_profiles(geocoder=geocoder)
        self._registry = InMemoryProfessionalRegistry(
            profiles, geocoder=geocoder, category_mode=self._policy.category_mode
        )
        LOGGER.debug("Fallback matcher seeded with %s professionals", len(self._registry))

    @property
    def registry(self) -> InMemoryProfessionalRegistry:
        return self._registry

    def find_role_matches(self, role: str, origin: GeoPoint, categories: Sequence[str]) -> List[MatchedProfessional]:
        return find_role_matches(self._registry, role, origin, categories, self._policy)
