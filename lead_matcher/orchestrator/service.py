"""Matching engine that geocodes, queries, ranks, and persists leads."""
from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import MatchingSettings
from ..errors import BackendUnavailable, MatchingTimeout
from ..fallback import FallbackMatcher
from ..geo.geocoder import Geocoder, NotFound
from ..geo.point import GeoPoint
from ..guards import GuardedRegistry, GuardedStore, TimeoutPolicy
from ..matching import find_role_matches
from ..models import (
    TRADE,
    UNMATCHED,
    VENDOR,
    Degraded,
    LeadRequest,
    MatchedProfessional,
    MatchOutcome,
    MatchResult,
    utcnow,
)
from ..scoring import score, urgency_for

LOGGER = logging.getLogger(__name__)


def new_lead_id() -> str:
    return f"lead-{uuid.uuid4().hex[:12]}"


class MatchingEngine:
    """Matches leads against a professional registry and records the results.

    Registry outages and timeouts switch the affected role to the fallback
    matcher; store outages leave the result unpersisted (or recorded in
    ``fallback_store``). Both are reported on :class:`MatchOutcome` rather than
    raised. ``pipeline_timeout_seconds`` bounds each lead from geocoding to the
    store write.
    """

    def __init__(
        self,
        registry,
        store,
        *,
        geocoder: Optional[Geocoder] = None,
        fallback: Optional[FallbackMatcher] = None,
        fallback_store=None,
        settings: Optional[MatchingSettings] = None,
        concurrent: Optional[bool] = None,
        max_workers: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings or MatchingSettings()
        self._policy = self._settings.ranking_policy()
        self._geocoder = geocoder or Geocoder()
        timeout_policy = TimeoutPolicy(call_timeout_seconds=self._settings.call_timeout_seconds)
        self._registry = registry if isinstance(registry, GuardedRegistry) else GuardedRegistry(
            registry, timeout_policy=timeout_policy
        )
        self._store = store if isinstance(store, GuardedStore) else GuardedStore(store, timeout_policy=timeout_policy)
        self._fallback = fallback
        self._fallback_store = fallback_store
        self._concurrent = self._settings.concurrent if concurrent is None else concurrent
        self._max_workers = max_workers if max_workers is not None else self._settings.max_workers
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max(4, self._max_workers or 0), thread_name_prefix="matching")

    @property
    def registry(self) -> GuardedRegistry:
        return self._registry

    @property
    def store(self) -> GuardedStore:
        return self._store

    @property
    def fallback_store(self):
        return self._fallback_store

    @property
    def geocoder(self) -> Geocoder:
        return self._geocoder

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._registry.close()
        self._store.close()

    # --- Public API ---

    def match_lead(self, lead: LeadRequest) -> MatchResult:
        return self.submit(lead).result

    def submit(self, lead: LeadRequest) -> MatchOutcome:
        """Match ``lead``, persist it, and report any degradations."""

        now = self._clock()
        prepared = lead.with_updates(
            lead_id=lead.lead_id or new_lead_id(),
            created_at=lead.created_at or now,
        )
        return self._run(prepared, last_updated=None)

    def match_leads(self, leads: Iterable[LeadRequest]) -> List[MatchOutcome]:
        """Submit every lead independently, preserving input order."""

        leads = list(leads)
        if not self._concurrent or len(leads) <= 1:
            return [self.submit(lead) for lead in leads]

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            return list(executor.map(self.submit, leads))

    def rematch(self, lead_id: str) -> MatchOutcome:
        """Re-run matching for a stored lead, replacing its index entries.

        Raises :class:`KeyError` when no store knows the lead, and
        :class:`StoreUnavailable` when the lead cannot be read at all.
        """

        record = None
        try:
            record = self._store.get_lead(lead_id)
        except BackendUnavailable:
            if self._fallback_store is None:
                raise
            LOGGER.warning("Lead store unavailable; looking up lead %s in the fallback store", lead_id)
        if record is None and self._fallback_store is not None:
            record = self._fallback_store.get_lead(lead_id)
        if record is None:
            raise KeyError(lead_id)
        return self._run(record.lead, last_updated=self._clock())

    def notification_recipients(self, result: MatchResult) -> List[Tuple[str, str]]:
        """Ordered, de-duplicated ``(uid, email)`` pairs to notify about ``result``."""

        recipients: List[Tuple[str, str]] = []
        seen = set()
        for match in result.all_matches:
            if match.uid in seen:
                continue
            seen.add(match.uid)
            recipients.append((match.uid, match.profile.email))
        return recipients

    # --- Pipeline ---

    def _run(self, lead: LeadRequest, *, last_updated: Optional[datetime]) -> MatchOutcome:
        intent_score = score(lead)
        lead = lead.with_updates(intent_score=intent_score, urgency=urgency_for(intent_score))
        lead_id = lead.lead_id or new_lead_id()
        degradations: List[Degraded] = []
        deadline = self._deadline()

        origin = self._geocoder.resolve(lead.zip_code)
        if isinstance(origin, NotFound):
            LOGGER.warning(
                "Lead %s has an unresolvable ZIP code %r (%s); storing as unmatched",
                lead_id,
                lead.zip_code,
                origin.reason,
            )
            result = MatchResult.empty(lead_id, created_at=lead.created_at)
            self._persist(lead, result, UNMATCHED, degradations, deadline)
            return MatchOutcome(lead=lead, result=result, degradations=degradations)

        categories = lead.categories
        roles = [VENDOR, TRADE] if lead.is_looking_for_pro else [VENDOR]
        if categories:
            matches = self._find_matches(roles, origin, categories, degradations, deadline)
        else:
            LOGGER.info("Lead %s requests no categories; skipping registry queries", lead_id)
            matches = {}

        result = MatchResult.build(
            lead_id,
            matches.get(VENDOR, []),
            matches.get(TRADE, []),
            created_at=lead.created_at,
            last_updated=last_updated,
        )
        self._persist(lead, result, result.status, degradations, deadline)
        LOGGER.info(
            "Lead %s in %s matched %s professionals (%s, avg %.1f mi)%s",
            lead_id,
            lead.zip_code,
            result.total_matches,
            result.status,
            result.average_distance,
            " [degraded]" if degradations else "",
        )
        return MatchOutcome(lead=lead, result=result, degradations=degradations)

    def _find_matches(
        self,
        roles: Sequence[str],
        origin: GeoPoint,
        categories: Sequence[str],
        degradations: List[Degraded],
        deadline: Optional[float],
    ) -> Dict[str, List[MatchedProfessional]]:
        pending: Dict[str, Future] = {}
        if self._concurrent:
            for role in roles:
                pending[role] = self._executor.submit(self._primary_role, role, origin, categories)

        results: Dict[str, List[MatchedProfessional]] = {}
        for role in roles:
            future = pending.get(role) or self._executor.submit(self._primary_role, role, origin, categories)
            try:
                results[role] = self._await(future, deadline, f"{role} matching", "registry")
            except BackendUnavailable as exc:
                degradations.append(
                    Degraded(
                        reason="timeout" if isinstance(exc, MatchingTimeout) else "registry_unavailable",
                        component="registry",
                        detail=str(exc),
                    )
                )
                results[role] = self._fallback_role(role, origin, categories, exc)
            except Exception as exc:
                # Corrupt documents or misbehaving backends degrade like an outage.
                LOGGER.exception("Registry failed during %s matching", role)
                degradations.append(
                    Degraded(reason="registry_unavailable", component="registry", detail=f"{type(exc).__name__}: {exc}")
                )
                results[role] = self._fallback_role(role, origin, categories, exc)
        return results

    def _primary_role(self, role: str, origin: GeoPoint, categories: Sequence[str]) -> List[MatchedProfessional]:
        return find_role_matches(self._registry, role, origin, categories, self._policy)

    def _fallback_role(
        self,
        role: str,
        origin: GeoPoint,
        categories: Sequence[str],
        cause: Exception,
    ) -> List[MatchedProfessional]:
        if self._fallback is None:
            LOGGER.warning("Registry unavailable for %s matching (%s) and no fallback configured", role, cause)
            return []
        LOGGER.warning("Registry unavailable for %s matching (%s); using fallback matcher", role, cause)
        return self._fallback.find_role_matches(role, origin, categories)

    def _persist(
        self,
        lead: LeadRequest,
        result: MatchResult,
        status: str,
        degradations: List[Degraded],
        deadline: Optional[float],
    ) -> None:
        try:
            if deadline is None:
                self._store.save(lead, result, status=status)
            else:
                future = self._executor.submit(self._store.save, lead, result, status=status)
                self._await(future, deadline, f"saving lead {result.lead_id}", "store")
            return
        except BackendUnavailable as exc:
            degradations.append(
                Degraded(
                    reason="timeout" if isinstance(exc, MatchingTimeout) else "store_unavailable",
                    component="store",
                    detail=str(exc),
                )
            )
            LOGGER.warning("Could not persist lead %s (%s); returning in-memory result", result.lead_id, exc)
        except Exception as exc:
            LOGGER.exception("Lead store failed while saving lead %s", result.lead_id)
            degradations.append(
                Degraded(reason="store_unavailable", component="store", detail=f"{type(exc).__name__}: {exc}")
            )
        if self._fallback_store is not None:
            self._fallback_store.save(lead, result, status=status)

    def _deadline(self) -> Optional[float]:
        timeout = self._settings.pipeline_timeout_seconds
        return time.monotonic() + timeout if timeout else None

    @staticmethod
    def _await(future: Future, deadline: Optional[float], what: str, component: str):
        if deadline is None:
            return future.result()
        remaining = deadline - time.monotonic()
        try:
            if remaining <= 0:
                raise FutureTimeout()
            return future.result(timeout=remaining)
        except FutureTimeout:
            # A write already in flight is left to finish; only the wait is bounded.
            future.cancel()
            raise MatchingTimeout(f"{what} exceeded the pipeline deadline", component=component) from None
