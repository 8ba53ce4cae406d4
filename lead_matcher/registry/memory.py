"""Dictionary-backed professional registry."""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..categories import TOKEN
from ..geo.geocoder import Geocoder
from ..models import AnyProfile, utcnow
from .base import Clock, GeohashRanges, apply_update, ensure_geohash, is_candidate, prepare_registration

LOGGER = logging.getLogger(__name__)


class InMemoryProfessionalRegistry:
    """Thread-safe registry holding profiles in a dict keyed by uid.

    Serves as the fallback data source and as the test double for the durable
    backends.
    """

    name = "memory"

    def __init__(
        self,
        profiles: Iterable[AnyProfile] = (),
        *,
        geocoder: Optional[Geocoder] = None,
        category_mode: str = TOKEN,
        clock: Clock = utcnow,
    ) -> None:
        self._geocoder = geocoder or Geocoder()
        self._category_mode = category_mode
        self._clock = clock
        self._lock = threading.RLock()
        self._profiles: Dict[str, AnyProfile] = {}
        for profile in profiles:
            self.upsert(profile)

    def __len__(self) -> int:
        with self._lock:
            return len(self._profiles)

    def register(self, profile: AnyProfile) -> str:
        prepared = prepare_registration(profile, self._geocoder, self._clock())
        with self._lock:
            self._profiles[prepared.uid] = prepared
        LOGGER.info("Registered %s %s (%s)", prepared.role, prepared.uid, prepared.display_name())
        return prepared.uid

    def upsert(self, profile: AnyProfile) -> str:
        checked = ensure_geohash(profile)
        with self._lock:
            self._profiles[checked.uid] = checked
        return checked.uid

    def get(self, professional_id: str) -> Optional[AnyProfile]:
        with self._lock:
            return self._profiles.get(professional_id)

    def get_by_email(self, email: str) -> Optional[AnyProfile]:
        wanted = (email or "").strip().lower()
        with self._lock:
            for profile in self._profiles.values():
                if profile.email.strip().lower() == wanted:
                    return profile
        return None

    def all(self) -> List[AnyProfile]:
        with self._lock:
            return sorted(self._profiles.values(), key=lambda profile: profile.uid)

    def find_candidates(self, role: str, ranges: GeohashRanges, category: str) -> List[AnyProfile]:
        with self._lock:
            profiles = list(self._profiles.values())
        return [
            profile
            for profile in profiles
            if is_candidate(profile, role, ranges, category, self._category_mode)
        ]

    def update(self, professional_id: str, changes: Mapping[str, Any]) -> AnyProfile:
        with self._lock:
            current = self._profiles.get(professional_id)
            if current is None:
                raise KeyError(professional_id)
            updated = apply_update(current, changes, self._geocoder, self._clock())
            self._profiles[professional_id] = updated
        LOGGER.debug("Updated professional %s fields %s", professional_id, sorted(changes))
        return updated
