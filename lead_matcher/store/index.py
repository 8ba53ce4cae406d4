"""Concurrent per-professional lead index."""
from __future__ import annotations

import threading
from typing import Dict, Iterable, List

from ..models import LeadIndexEntry
from .base import newest_first


class LeadIndex:
    """Multimap of professional id to the leads matched to that professional.

    Each professional's bucket has its own lock, so writers touching different
    professionals never contend. Bucket locks are created under a single
    registry lock.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._buckets: Dict[str, Dict[str, LeadIndexEntry]] = {}

    def _bucket(self, professional_id: str) -> tuple[threading.Lock, Dict[str, LeadIndexEntry]]:
        with self._registry_lock:
            lock = self._locks.get(professional_id)
            if lock is None:
                lock = self._locks[professional_id] = threading.Lock()
                self._buckets[professional_id] = {}
            return lock, self._buckets[professional_id]

    def add(self, entry: LeadIndexEntry) -> None:
        lock, bucket = self._bucket(entry.professional_id)
        with lock:
            bucket[entry.lead.lead_id] = entry

    def add_all(self, entries: Iterable[LeadIndexEntry]) -> None:
        for entry in entries:
            self.add(entry)

    def discard(self, lead_id: str, professional_ids: Iterable[str]) -> None:
        for professional_id in professional_ids:
            lock, bucket = self._bucket(professional_id)
            with lock:
                bucket.pop(lead_id, None)

    def entries_for(self, professional_id: str) -> List[LeadIndexEntry]:
        with self._registry_lock:
            lock = self._locks.get(professional_id)
            bucket = self._buckets.get(professional_id)
        if lock is None or bucket is None:
            return []
        with lock:
            entries = list(bucket.values())
        return sorted(
            entries,
            key=lambda entry: (newest_first(entry.lead.created_at), entry.lead.lead_id),
            reverse=True,
        )

    def clear(self) -> None:
        with self._registry_lock:
            self._locks.clear()
            self._buckets.clear()

    def __len__(self) -> int:
        with self._registry_lock:
            buckets = [(self._locks[key], bucket) for key, bucket in self._buckets.items()]
        total = 0
        for lock, bucket in buckets:
            with lock:
                total += len(bucket)
        return total
