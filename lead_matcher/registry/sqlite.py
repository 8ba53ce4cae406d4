"""SQLite-backed professional registry."""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from ..categories import TOKEN
from ..errors import RegistryUnavailable
from ..geo.geocoder import Geocoder
from ..models import AnyProfile, profile_from_mapping, utcnow
from .base import Clock, GeohashRanges, apply_update, ensure_geohash, is_candidate, prepare_registration

LOGGER = logging.getLogger(__name__)


class SqliteProfessionalRegistry:
    """Durable registry storing each profile as a JSON document.

    ``role``, ``status``, ``email`` and ``geohash`` are copied into indexed
    columns so the geohash range scan runs in SQL; category matching is fuzzy
    and runs in Python on the rows the scan returns.
    """

    name = "sqlite"

    def __init__(
        self,
        path: Union[str, Path] = ":memory:",
        *,
        geocoder: Optional[Geocoder] = None,
        category_mode: str = TOKEN,
        clock: Clock = utcnow,
        profiles: Iterable[AnyProfile] = (),
    ) -> None:
        self._geocoder = geocoder or Geocoder()
        self._category_mode = category_mode
        self._clock = clock
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise RegistryUnavailable(f"Could not open registry database '{path}': {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._create_schema()
        for profile in profiles:
            self.upsert(profile)

    def _create_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS professionals (
                uid       TEXT PRIMARY KEY,
                role      TEXT NOT NULL,
                status    TEXT NOT NULL,
                email     TEXT NOT NULL COLLATE NOCASE,
                geohash   TEXT NOT NULL,
                document  TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_professionals_role_geohash ON professionals (role, geohash);
            CREATE INDEX IF NOT EXISTS idx_professionals_email ON professionals (email);
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def register(self, profile: AnyProfile) -> str:
        prepared = prepare_registration(profile, self._geocoder, self._clock())
        self._write(prepared)
        LOGGER.info("Registered %s %s (%s)", prepared.role, prepared.uid, prepared.display_name())
        return prepared.uid

    def upsert(self, profile: AnyProfile) -> str:
        checked = ensure_geohash(profile)
        self._write(checked)
        return checked.uid

    def get(self, professional_id: str) -> Optional[AnyProfile]:
        rows = self._query("SELECT document FROM professionals WHERE uid = ?", (professional_id,))
        return self._to_profile(rows[0]) if rows else None

    def get_by_email(self, email: str) -> Optional[AnyProfile]:
        rows = self._query(
            "SELECT document FROM professionals WHERE email = ? ORDER BY uid LIMIT 1",
            ((email or "").strip(),),
        )
        return self._to_profile(rows[0]) if rows else None

    def all(self) -> List[AnyProfile]:
        return [self._to_profile(row) for row in self._query("SELECT document FROM professionals ORDER BY uid", ())]

    def find_candidates(self, role: str, ranges: GeohashRanges, category: str) -> List[AnyProfile]:
        if not ranges:
            return []
        clauses = " OR ".join("(geohash >= ? AND geohash <= ?)" for _ in ranges)
        params: List[Any] = [role, "active"]
        for low, high in ranges:
            params.extend((low, high))
        rows = self._query(
            f"SELECT document FROM professionals WHERE role = ? AND status = ? AND ({clauses})",
            params,
        )
        profiles = [self._to_profile(row) for row in rows]
        return [
            profile
            for profile in profiles
            if is_candidate(profile, role, ranges, category, self._category_mode)
        ]

    def update(self, professional_id: str, changes: Mapping[str, Any]) -> AnyProfile:
        with self._lock:
            current = self.get(professional_id)
            if current is None:
                raise KeyError(professional_id)
            updated = apply_update(current, changes, self._geocoder, self._clock())
            self._write(updated)
        LOGGER.debug("Updated professional %s fields %s", professional_id, sorted(changes))
        return updated

    def _write(self, profile: AnyProfile) -> None:
        document = json.dumps(profile.as_dict(), default=str)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO professionals (uid, role, status, email, geohash, document)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(uid) DO UPDATE SET
                        role = excluded.role,
                        status = excluded.status,
                        email = excluded.email,
                        geohash = excluded.geohash,
                        document = excluded.document
                    """,
                    (profile.uid, profile.role, profile.status, profile.email.strip(), profile.geohash, document),
                )
        except sqlite3.Error as exc:
            raise RegistryUnavailable(f"Could not write professional {profile.uid}: {exc}") from exc

    def _query(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise RegistryUnavailable(f"Registry query failed: {exc}") from exc

    @staticmethod
    def _to_profile(row: sqlite3.Row) -> AnyProfile:
        return profile_from_mapping(json.loads(row["document"]))
