"""SQLite-backed lead store."""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from ..errors import StoreUnavailable
from ..models import LeadIndexEntry, LeadRecord, LeadRequest, LeadSummary, MatchResult
from .base import index_entries, record_from_document, record_to_document

LOGGER = logging.getLogger(__name__)


class SqliteLeadStore:
    """Stores lead records as JSON documents plus a ``lead_matches`` index table.

    The index table is the durable form of the per-professional lead index: one
    row per (professional, lead) with the denormalised lead summary.
    """

    name = "sqlite"

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Could not open lead database '{path}': {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._create_schema()

    def _create_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS leads (
                lead_id         TEXT PRIMARY KEY,
                customer_email  TEXT NOT NULL DEFAULT '' COLLATE NOCASE,
                customer_uid    TEXT,
                status          TEXT NOT NULL,
                created_at      TEXT,
                document        TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_leads_customer_email ON leads (customer_email);
            CREATE INDEX IF NOT EXISTS idx_leads_customer_uid ON leads (customer_uid);

            CREATE TABLE IF NOT EXISTS lead_matches (
                professional_id TEXT NOT NULL,
                lead_id         TEXT NOT NULL,
                role            TEXT NOT NULL,
                distance_miles  REAL NOT NULL,
                created_at      TEXT,
                summary         TEXT NOT NULL,
                PRIMARY KEY (professional_id, lead_id)
            );
            CREATE INDEX IF NOT EXISTS idx_lead_matches_lead ON lead_matches (lead_id);
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def save(self, lead: LeadRequest, result: MatchResult, *, status: Optional[str] = None) -> LeadRecord:
        record = LeadRecord(lead=lead, match=result, status=status or result.status)
        document = json.dumps(record_to_document(record), default=str)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO leads (lead_id, customer_email, customer_uid, status, created_at, document)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(lead_id) DO UPDATE SET
                        customer_email = excluded.customer_email,
                        customer_uid = excluded.customer_uid,
                        status = excluded.status,
                        created_at = excluded.created_at,
                        document = excluded.document
                    """,
                    (
                        result.lead_id,
                        (lead.customer_email or "").strip(),
                        lead.customer_uid,
                        record.status,
                        _timestamp(lead),
                        document,
                    ),
                )
                self._conn.execute("DELETE FROM lead_matches WHERE lead_id = ?", (result.lead_id,))
                self._insert_entries(lead, result)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Could not store lead {result.lead_id}: {exc}") from exc
        LOGGER.debug("Stored lead %s with %s matches", result.lead_id, result.total_matches)
        return record

    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        rows = self._query("SELECT document FROM leads WHERE lead_id = ?", (lead_id,))
        return record_from_document(json.loads(rows[0]["document"])) if rows else None

    def get_matches_for_professional(self, professional_id: str) -> List[LeadIndexEntry]:
        rows = self._query(
            """
            SELECT professional_id, role, distance_miles, summary FROM lead_matches
            WHERE professional_id = ?
            ORDER BY created_at IS NULL, created_at DESC, lead_id DESC
            """,
            (professional_id,),
        )
        return [
            LeadIndexEntry(
                professional_id=row["professional_id"],
                role=row["role"],
                lead=_summary_from_json(row["summary"]),
                distance_miles=float(row["distance_miles"]),
            )
            for row in rows
        ]

    def get_leads_by_customer(self, identifier: str) -> List[LeadRecord]:
        wanted = (identifier or "").strip()
        if not wanted:
            return []
        rows = self._query(
            """
            SELECT document FROM leads
            WHERE customer_email = ? OR customer_uid = ?
            ORDER BY created_at IS NULL, created_at DESC, lead_id DESC
            """,
            (wanted, wanted),
        )
        return [record_from_document(json.loads(row["document"])) for row in rows]

    def rebuild_index(self) -> int:
        rows = self._query("SELECT document FROM leads", ())
        records = [record_from_document(json.loads(row["document"])) for row in rows]
        count = 0
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM lead_matches")
                for record in records:
                    count += self._insert_entries(record.lead, record.match)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Could not rebuild lead index: {exc}") from exc
        LOGGER.info("Rebuilt lead index: %s entries across %s leads", count, len(records))
        return count

    def _insert_entries(self, lead: LeadRequest, result: MatchResult) -> int:
        entries = index_entries(lead, result)
        self._conn.executemany(
            """
            INSERT OR REPLACE INTO lead_matches (professional_id, lead_id, role, distance_miles, created_at, summary)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.professional_id,
                    result.lead_id,
                    entry.role,
                    entry.distance_miles,
                    _timestamp(lead),
                    _summary_to_json(entry.lead),
                )
                for entry in entries
            ],
        )
        return len(entries)

    def _query(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Lead store query failed: {exc}") from exc


def _timestamp(lead: LeadRequest) -> Optional[str]:
    return lead.created_at.isoformat() if lead.created_at else None


def _summary_to_json(summary: LeadSummary) -> str:
    return json.dumps(
        {
            "lead_id": summary.lead_id,
            "customer_name": summary.customer_name,
            "zip_code": summary.zip_code,
            "categories": list(summary.categories),
            "project_type": summary.project_type,
            "intent_score": summary.intent_score,
            "urgency": summary.urgency,
            "created_at": summary.created_at.isoformat() if summary.created_at else None,
        }
    )


def _summary_from_json(text: str) -> LeadSummary:
    data = json.loads(text)
    created_at = data.get("created_at")
    return LeadSummary(
        lead_id=data["lead_id"],
        customer_name=data.get("customer_name", ""),
        zip_code=data.get("zip_code", ""),
        categories=tuple(data.get("categories") or ()),
        project_type=data.get("project_type"),
        intent_score=data.get("intent_score"),
        urgency=data.get("urgency"),
        created_at=datetime.fromisoformat(created_at) if created_at else None,
    )
