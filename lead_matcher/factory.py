"""Factory helpers for constructing the matching engine from configuration."""
from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ConfigurationError, MatchingSettings, backend_config, resolve_path, zip_table_paths
from .fallback import FallbackMatcher
from .geo.geocoder import Geocoder
from .guards import GuardedRegistry, GuardedStore, TimeoutPolicy
from .ingestion.loaders import load_professionals, load_zip_table
from .models import AnyProfile
from .orchestrator.service import MatchingEngine
from .registry.memory import InMemoryProfessionalRegistry
from .registry.sample import located_profiles
from .registry.sqlite import SqliteProfessionalRegistry
from .store.memory import InMemoryLeadStore
from .store.sqlite import SqliteLeadStore

LOGGER = logging.getLogger(__name__)

REGISTRY_BACKENDS = {
    "memory": InMemoryProfessionalRegistry,
    "sqlite": SqliteProfessionalRegistry,
}

STORE_BACKENDS = {
    "memory": InMemoryLeadStore,
    "sqlite": SqliteLeadStore,
}


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid backend class path '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def _backend_class(section: str, declared: Dict[str, Any], builtin: Dict[str, type]):
    class_path = declared.get("class")
    if class_path:
        return _load_class(class_path)
    name = declared.get("backend", "memory")
    try:
        return builtin[name]
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown {section} backend '{name}'. Expected one of {sorted(builtin)} or a 'class' path"
        ) from exc


def _options(declared: Dict[str, Any], base_dir: Optional[Path]) -> Dict[str, Any]:
    options = dict(declared.get("options") or {})
    if "path" in options and options["path"] != ":memory:":
        options["path"] = str(resolve_path(options["path"], base_dir))
    return options


def build_geocoder(config: Dict[str, Any], *, base_dir: Optional[Path] = None) -> Geocoder:
    """Default ZIP table extended with any ``geocoder.zip_tables`` files."""

    geocoder = Geocoder()
    for path in zip_table_paths(config, base_dir=base_dir):
        added = geocoder.extend(load_zip_table(path))
        LOGGER.info("Loaded %s ZIP codes from %s", added, path)
    return geocoder


def load_seed_profiles(
    declared: Dict[str, Any], geocoder: Geocoder, *, base_dir: Optional[Path] = None
) -> Optional[List[AnyProfile]]:
    """Profiles named by a section's ``seed`` entry: ``samples`` or a spreadsheet path."""

    seed = declared.get("seed")
    if not seed:
        return None
    if seed == "samples":
        return located_profiles(geocoder=geocoder)

    return located_profiles(load_professionals(resolve_path(seed, base_dir)), geocoder=geocoder)


def build_registry(
    config: Dict[str, Any],
    *,
    geocoder: Optional[Geocoder] = None,
    settings: Optional[MatchingSettings] = None,
    base_dir: Optional[Path] = None,
) -> GuardedRegistry:
    """Instantiate the configured professional registry wrapped in a guard."""

    geocoder = geocoder or Geocoder()
    settings = settings or MatchingSettings.from_config(config)
    declared = backend_config(config, "registry")
    registry_cls = _backend_class("registry", declared, REGISTRY_BACKENDS)
    options = _options(declared, base_dir)
    if registry_cls in REGISTRY_BACKENDS.values():
        options.setdefault("geocoder", geocoder)
        options.setdefault("category_mode", settings.category_mode)
    registry = registry_cls(**options)

    seed = load_seed_profiles(declared, geocoder, base_dir=base_dir)
    if seed:
        for profile in seed:
            registry.upsert(profile)
        LOGGER.info("Seeded registry with %s professionals", len(seed))

    return GuardedRegistry(
        registry,
        display_name=declared.get("name"),
        timeout_policy=TimeoutPolicy(call_timeout_seconds=settings.call_timeout_seconds),
    )


def build_store(
    config: Dict[str, Any],
    *,
    settings: Optional[MatchingSettings] = None,
    base_dir: Optional[Path] = None,
) -> GuardedStore:
    """Instantiate the configured lead store wrapped in a guard."""

    settings = settings or MatchingSettings.from_config(config)
    declared = backend_config(config, "store")
    store_cls = _backend_class("store", declared, STORE_BACKENDS)
    store = store_cls(**_options(declared, base_dir))
    return GuardedStore(
        store,
        display_name=declared.get("name"),
        timeout_policy=TimeoutPolicy(call_timeout_seconds=settings.call_timeout_seconds),
    )


def build_fallback(
    config: Dict[str, Any],
    *,
    geocoder: Optional[Geocoder] = None,
    settings: Optional[MatchingSettings] = None,
    base_dir: Optional[Path] = None,
) -> Optional[FallbackMatcher]:
    """The fallback matcher, seeded from ``fallback.seed`` or the bundled samples."""

    declared = backend_config(config, "fallback")
    if not declared.get("enabled", True):
        return None
    geocoder = geocoder or Geocoder()
    settings = settings or MatchingSettings.from_config(config)
    profiles = load_seed_profiles(declared, geocoder, base_dir=base_dir)
    return FallbackMatcher(profiles, policy=settings.ranking_policy(), geocoder=geocoder)


def build_engine(config: Dict[str, Any], *, base_dir: Optional[Path] = None, **overrides: Any) -> MatchingEngine:
    """Build a :class:`MatchingEngine` from a loaded configuration mapping.

    Keyword ``overrides`` (``concurrent``, ``max_workers``, ``clock``) are
    passed to the engine as-is.
    """

    settings = MatchingSettings.from_config(config)
    geocoder = build_geocoder(config, base_dir=base_dir)
    registry = build_registry(config, geocoder=geocoder, settings=settings, base_dir=base_dir)
    store = build_store(config, settings=settings, base_dir=base_dir)
    fallback = build_fallback(config, geocoder=geocoder, settings=settings, base_dir=base_dir)
    fallback_store = InMemoryLeadStore() if (config.get("store") or {}).get("memory_fallback", True) else None
    return MatchingEngine(
        registry,
        store,
        geocoder=geocoder,
        fallback=fallback,
        fallback_store=fallback_store,
        settings=settings,
        **overrides,
    )
