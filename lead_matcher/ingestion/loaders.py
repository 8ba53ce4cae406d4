"""Utilities for loading leads, professionals, and ZIP tables from spreadsheets."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..models import AnyProfile, LeadRequest, profile_from_mapping

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
ColumnMapping = Mapping[str, Union[str, Sequence[str]]]

_LEAD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "lead_id": ("lead_id", "id"),
    "customer_name": ("customer_name", "name", "full_name"),
    "customer_email": ("customer_email", "email", "email_address"),
    "customer_phone": ("customer_phone", "phone", "phone_number"),
    "customer_uid": ("customer_uid", "customer_id"),
    "zip_code": ("zip_code", "zipcode", "zip", "postal_code"),
    "material_categories": ("material_categories", "material_category", "categories", "category"),
    "project_type": ("project_type",),
    "project_details": ("project_details", "details"),
    "message": ("message", "description", "notes"),
    "budget": ("budget",),
    "timeline": ("timeline",),
    "is_looking_for_pro": ("is_looking_for_pro", "looking_for_pro", "needs_pro"),
    "created_at": ("created_at", "submitted_at"),
}

_PROFESSIONAL_SYNONYMS: Mapping[str, Sequence[str]] = {
    "uid": ("uid", "professional_id", "id"),
    "role": ("role", "type"),
    "email": ("email", "email_address"),
    "name": ("name", "full_name", "contact_name"),
    "business_name": ("business_name", "company"),
    "phone": ("phone", "phone_number"),
    "zip_code": ("zip_code", "zipcode", "zip", "postal_code"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lng", "lon"),
    "service_radius_miles": ("service_radius_miles", "service_radius", "radius"),
    "categories": ("categories", "product_categories", "trade_categories", "category"),
    "rating": ("rating",),
    "review_count": ("review_count", "reviews"),
    "verified": ("verified",),
    "status": ("status",),
    "specialty": ("specialty",),
    "license_number": ("license_number", "license"),
    "years_experience": ("years_experience", "experience"),
}

_ZIP_SYNONYMS: Mapping[str, Sequence[str]] = {
    "zip_code": ("zip_code", "zipcode", "zip", "postal_code"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lng", "lon"),
}

_LIST_FIELDS = {"material_categories", "categories"}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_lead_requests(
    path: PathLike,
    *,
    column_mapping: Optional[ColumnMapping] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[LeadRequest]:
    """Load lead requests from a spreadsheet.

    Parameters
    ----------
    path:
        Path to the CSV/TSV/XLSX file to be loaded.
    column_mapping:
        Optional mapping of :class:`LeadRequest` field names to column names (or
        sequences of column names for ``material_categories``).
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for CSV files.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    leads: List[LeadRequest] = []
    for row in _iter_records(dataframe, _LEAD_SYNONYMS, column_mapping):
        leads.append(LeadRequest.from_mapping(row))
    LOGGER.info("Loaded %s lead requests from %s", len(leads), path)
    return leads


def load_professionals(
    path: PathLike,
    *,
    column_mapping: Optional[ColumnMapping] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[AnyProfile]:
    """Load vendor and trade profiles from a spreadsheet.

    Rows with an unknown role or invalid radius/rating are skipped with a
    warning. Profiles are returned without ids or locations unless the file
    provides them.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    profiles: List[AnyProfile] = []
    for index, row in enumerate(_iter_records(dataframe, _PROFESSIONAL_SYNONYMS, column_mapping), start=1):
        try:
            profiles.append(profile_from_mapping(row))
        except ValueError as exc:
            LOGGER.warning("Skipping professional row %s in %s: %s", index, path, exc)
    LOGGER.info("Loaded %s professionals from %s", len(profiles), path)
    return profiles


def load_zip_table(
    path: PathLike,
    *,
    column_mapping: Optional[ColumnMapping] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Tuple[str, float, float]]:
    """Load ``(zip, latitude, longitude)`` rows for :meth:`Geocoder.extend`."""

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    rows: List[Tuple[str, float, float]] = []
    for row in _iter_records(dataframe, _ZIP_SYNONYMS, column_mapping):
        zip_code = row.get("zip_code")
        try:
            latitude = float(row["latitude"])
            longitude = float(row["longitude"])
        except (KeyError, TypeError, ValueError):
            LOGGER.warning("Skipping ZIP row %r in %s: missing or non-numeric coordinates", zip_code, path)
            continue
        if zip_code:
            rows.append((str(zip_code), latitude, longitude))
    return rows


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    # Keep ZIP codes as text so leading zeros survive.
    loader_kwargs.setdefault("dtype", str)
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=loader_kwargs.pop("engine", None) or "openpyxl", **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _iter_records(
    dataframe: pd.DataFrame,
    synonyms: Mapping[str, Sequence[str]],
    mapping: Optional[ColumnMapping],
) -> Iterable[Dict[str, Any]]:
    mapping = dict(mapping or {})
    columns = [str(column) for column in dataframe.columns]
    resolved = {field: _resolve_columns(field, columns, synonyms, mapping) for field in synonyms}

    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        record: Dict[str, Any] = {}
        for field, field_columns in resolved.items():
            if field in _LIST_FIELDS:
                values = _extract_list(row, field_columns)
                if values:
                    record[field] = ", ".join(values)
            else:
                value = _extract_scalar(row, field_columns)
                if value is not None:
                    record[field] = value
        yield record


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _resolve_columns(
    field: str,
    available_columns: Iterable[str],
    synonyms: Mapping[str, Sequence[str]],
    mapping: ColumnMapping,
) -> List[str]:
    if field in mapping:
        return _normalize_column_spec(mapping[field])

    names = tuple(name.lower() for name in synonyms.get(field, (field,)))
    resolved: List[str] = []

    for column in available_columns:
        column_lc = column.lower().strip()
        for synonym in names:
            if column_lc == synonym or column_lc.startswith(f"{synonym}_") or column_lc.startswith(f"{synonym} "):
                resolved.append(column)
                break

    return resolved


def _normalize_column_spec(value: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _extract_scalar(row: pd.Series, columns: Sequence[str]) -> Optional[str]:
    for column in columns:
        if column not in row:
            continue
        text = _clean_text(row[column])
        if text is not None:
            return text
    return None


def _extract_list(row: pd.Series, columns: Sequence[str]) -> List[str]:
    results: List[str] = []
    for column in columns:
        if column not in row:
            continue
        text = _clean_text(row[column])
        if text and text not in results:
            results.append(text)
    return results


def _clean_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    text = str(value).strip()
    return text or None


__all__ = ["UnsupportedFileTypeError", "load_lead_requests", "load_professionals", "load_zip_table"]
