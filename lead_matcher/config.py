"""Configuration helpers for the lead matching engine."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .categories import CATEGORY_MODES, TOKEN
from .guards import DEFAULT_CALL_TIMEOUT_SECONDS, DEFAULT_PIPELINE_TIMEOUT_SECONDS
from .matching import DEFAULT_MAX_RESULTS, DEFAULT_SEARCH_RADIUS_MILES, RankingPolicy

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

BACKEND_SECTIONS = ("registry", "store", "fallback")


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class MatchingSettings:
    """Typed view of the ``matching`` section."""

    search_radius_miles: float = DEFAULT_SEARCH_RADIUS_MILES
    distance_weight: float = 0.7
    rating_weight: float = 0.3
    max_results_per_role: int = DEFAULT_MAX_RESULTS
    category_mode: str = TOKEN
    call_timeout_seconds: Optional[float] = DEFAULT_CALL_TIMEOUT_SECONDS
    pipeline_timeout_seconds: Optional[float] = DEFAULT_PIPELINE_TIMEOUT_SECONDS
    concurrent: bool = False
    max_workers: Optional[int] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MatchingSettings":
        section = config.get("matching") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'matching' must be a mapping")
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ConfigurationError(f"Unknown matching settings: {unknown}")
        settings = cls(**section)
        if settings.category_mode not in CATEGORY_MODES:
            raise ConfigurationError(
                f"Unknown category_mode '{settings.category_mode}'. Expected one of {CATEGORY_MODES}"
            )
        try:
            settings.ranking_policy()
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        return settings

    def ranking_policy(self) -> RankingPolicy:
        return RankingPolicy(
            search_radius_miles=float(self.search_radius_miles),
            distance_weight=float(self.distance_weight),
            rating_weight=float(self.rating_weight),
            max_results=int(self.max_results_per_role),
            category_mode=self.category_mode,
        )


def backend_config(config: Dict[str, Any], section: str) -> Dict[str, Any]:
    """Return the backend declaration for ``section``, defaulting to in-memory."""

    if section not in BACKEND_SECTIONS:
        raise ConfigurationError(f"Unknown backend section '{section}'. Expected one of {BACKEND_SECTIONS}")
    declared = config.get(section)
    if declared is None:
        return {"backend": "memory"}
    if not isinstance(declared, dict):
        raise ConfigurationError(f"'{section}' must be a mapping")
    if not declared.get("enabled", True):
        LOGGER.debug("Skipping disabled %s backend", section)
        return {"enabled": False}
    return declared


def zip_table_paths(config: Dict[str, Any], *, base_dir: Optional[Path] = None) -> List[Path]:
    section = config.get("geocoder") or {}
    tables = section.get("zip_tables") or []
    if isinstance(tables, (str, Path)):
        tables = [tables]
    return [resolve_path(table, base_dir) for table in tables]


def resolve_path(value: str | Path, base_dir: Optional[Path] = None) -> Path:
    """Resolve ``value`` relative to the configuration file's directory."""

    path = Path(value)
    if base_dir is not None and not path.is_absolute():
        return base_dir / path
    return path
