"""Export utilities for match results and per-professional lead lists."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import LeadIndexEntry, MatchedProfessional, MatchOutcome

PathLike = Union[str, Path]

MATCH_COLUMNS = [
    "lead_id",
    "customer_name",
    "customer_email",
    "zip_code",
    "categories",
    "intent_score",
    "urgency",
    "status",
    "total_matches",
    "average_distance",
    "matched_vendors",
    "matched_trades",
    "degraded",
    "notes",
]

INDEX_COLUMNS = [
    "professional_id",
    "role",
    "lead_id",
    "customer_name",
    "zip_code",
    "categories",
    "project_type",
    "intent_score",
    "urgency",
    "distance_miles",
    "created_at",
]


def export_match_results(
    outcomes: Sequence[MatchOutcome],
    path: PathLike,
    *,
    include_distances: bool = True,
    sheet_name: str = "Matches",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write one row per matched lead to a CSV or Excel file."""

    dataframe = match_results_to_dataframe(outcomes, include_distances=include_distances)
    output_path = Path(path)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def match_results_to_dataframe(
    outcomes: Sequence[MatchOutcome],
    *,
    include_distances: bool = True,
) -> pd.DataFrame:
    """Convert match outcomes into a :class:`pandas.DataFrame`."""

    records = [_outcome_to_row(outcome, include_distances=include_distances) for outcome in outcomes]
    return pd.DataFrame(records, columns=MATCH_COLUMNS)


def export_lead_index(
    entries: Sequence[LeadIndexEntry],
    path: PathLike,
    *,
    sheet_name: str = "Leads",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write a professional's lead list to a CSV or Excel file."""

    dataframe = lead_index_to_dataframe(entries)
    output_path = Path(path)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def lead_index_to_dataframe(entries: Sequence[LeadIndexEntry]) -> pd.DataFrame:
    records = [
        {
            "professional_id": entry.professional_id,
            "role": entry.role,
            "lead_id": entry.lead.lead_id,
            "customer_name": entry.lead.customer_name,
            "zip_code": entry.lead.zip_code,
            "categories": _join_list(entry.lead.categories),
            "project_type": entry.lead.project_type,
            "intent_score": entry.lead.intent_score,
            "urgency": entry.lead.urgency,
            "distance_miles": round(entry.distance_miles, 1),
            "created_at": entry.lead.created_at.isoformat() if entry.lead.created_at else None,
        }
        for entry in entries
    ]
    return pd.DataFrame(records, columns=INDEX_COLUMNS)


def _outcome_to_row(outcome: MatchOutcome, *, include_distances: bool) -> MutableMapping[str, object]:
    lead = outcome.lead
    result = outcome.result
    return {
        "lead_id": result.lead_id,
        "customer_name": lead.customer_name,
        "customer_email": lead.customer_email,
        "zip_code": lead.zip_code,
        "categories": _join_list(lead.categories),
        "intent_score": lead.intent_score,
        "urgency": lead.urgency,
        "status": result.status,
        "total_matches": result.total_matches,
        "average_distance": round(result.average_distance, 1),
        "matched_vendors": _join_list(
            _format_match(match, include_distances=include_distances) for match in result.matched_vendors
        ),
        "matched_trades": _join_list(
            _format_match(match, include_distances=include_distances) for match in result.matched_trades
        ),
        "degraded": outcome.degraded,
        "notes": _join_list(f"{item.component}: {item.reason}" for item in outcome.degradations),
    }


def _format_match(match: MatchedProfessional, *, include_distances: bool) -> str:
    parts: List[str] = [match.profile.display_name()]
    annotations: List[str] = [match.uid]
    if include_distances:
        annotations.append(f"{match.distance_miles:.1f} mi")
    parts.append(f"({', '.join(annotations)})")
    return " ".join(parts)


def _join_list(values: Iterable[Optional[str]]) -> str:
    cleaned: List[str] = []
    for value in values:
        if not value:
            continue
        text = str(value).strip()
        if text:
            cleaned.append(text)
    return "; ".join(cleaned)


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = [
    "export_lead_index",
    "export_match_results",
    "lead_index_to_dataframe",
    "match_results_to_dataframe",
]
