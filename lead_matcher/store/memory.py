"""In-process lead store."""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..models import LeadIndexEntry, LeadRecord, LeadRequest, MatchResult
from .base import customer_matches, index_entries, newest_first
from .index import LeadIndex

LOGGER = logging.getLogger(__name__)


class InMemoryLeadStore:
    """Keeps lead records in a dict and matches in a :class:`LeadIndex`."""

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, LeadRecord] = {}
        self._index = LeadIndex()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def save(self, lead: LeadRequest, result: MatchResult, *, status: Optional[str] = None) -> LeadRecord:
        record = LeadRecord(lead=lead, match=result, status=status or result.status)
        # Record and index entries change together.
        with self._lock:
            previous = self._records.get(result.lead_id)
            self._records[result.lead_id] = record
            if previous is not None:
                self._index.discard(result.lead_id, [match.uid for match in previous.match.all_matches])
            self._index.add_all(index_entries(lead, result))
        LOGGER.debug("Stored lead %s with %s matches", result.lead_id, result.total_matches)
        return record

    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        with self._lock:
            return self._records.get(lead_id)

    def get_matches_for_professional(self, professional_id: str) -> List[LeadIndexEntry]:
        return self._index.entries_for(professional_id)

    def get_leads_by_customer(self, identifier: str) -> List[LeadRecord]:
        with self._lock:
            records = [record for record in self._records.values() if customer_matches(record.lead, identifier)]
        return sorted(
            records,
            key=lambda record: (newest_first(record.lead.created_at), record.lead_id),
            reverse=True,
        )

    def rebuild_index(self) -> int:
        count = 0
        with self._lock:
            records = list(self._records.values())
            self._index.clear()
            for record in records:
                entries = index_entries(record.lead, record.match)
                self._index.add_all(entries)
                count += len(entries)
        LOGGER.info("Rebuilt lead index: %s entries across %s leads", count, len(records))
        return count
