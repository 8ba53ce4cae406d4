"""Lead store protocol and helpers shared by the store backends."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..models import LeadIndexEntry, LeadRecord, LeadRequest, MatchResult

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class LeadStore(Protocol):
    """Interface implemented by lead/match store backends."""

    def save(
        self, lead: LeadRequest, result: MatchResult, *, status: Optional[str] = None
    ) -> LeadRecord:  # pragma: no cover - runtime protocol
        """Persist ``lead`` with its match and index it under every matched professional."""

    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:  # pragma: no cover - runtime protocol
        """Return the stored record for ``lead_id``."""

    def get_matches_for_professional(self, professional_id: str) -> List[LeadIndexEntry]:  # pragma: no cover
        """Return the leads matched to ``professional_id``, newest first."""

    def get_leads_by_customer(self, identifier: str) -> List[LeadRecord]:  # pragma: no cover
        """Return leads submitted by a customer email or uid, newest first."""

    def rebuild_index(self) -> int:  # pragma: no cover - runtime protocol
        """Recompute the per-professional index from stored matches."""


def index_entries(lead: LeadRequest, result: MatchResult) -> List[LeadIndexEntry]:
    """Per-professional index rows for every professional in ``result``."""

    summary = lead.summary()
    return [
        LeadIndexEntry(
            professional_id=match.uid,
            role=match.role,
            lead=summary,
            distance_miles=match.distance_miles,
        )
        for match in result.all_matches
    ]


def newest_first(created_at: Optional[datetime]) -> datetime:
    """Sort key placing undated leads last when sorted in reverse."""

    if created_at is None:
        return _OLDEST
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def customer_matches(lead: LeadRequest, identifier: str) -> bool:
    wanted = (identifier or "").strip()
    if not wanted:
        return False
    if lead.customer_uid and lead.customer_uid == wanted:
        return True
    return (lead.customer_email or "").strip().lower() == wanted.lower()


def record_to_document(record: LeadRecord) -> Dict[str, Any]:
    return {"lead": record.lead.as_dict(), "match": record.match.as_dict(), "status": record.status}


def record_from_document(document: Mapping[str, Any]) -> LeadRecord:
    return LeadRecord(
        lead=LeadRequest.from_mapping(document["lead"]),
        match=MatchResult.from_dict(document["match"]),
        status=str(document["status"]),
    )


__all__ = [
    "LeadStore",
    "customer_matches",
    "index_entries",
    "newest_first",
    "record_from_document",
    "record_to_document",
]
