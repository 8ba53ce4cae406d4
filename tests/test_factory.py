import pytest

from lead_matcher.config import ConfigurationError
from lead_matcher.factory import build_engine, build_fallback, build_geocoder, build_registry, build_store
from lead_matcher.guards import GuardedRegistry, GuardedStore
from lead_matcher.models import LeadRequest
from lead_matcher.registry import InMemoryProfessionalRegistry, SqliteProfessionalRegistry
from lead_matcher.store import InMemoryLeadStore, SqliteLeadStore


class CustomRegistry(InMemoryProfessionalRegistry):
    name = "custom"


def test_defaults_build_in_memory_backends() -> None:
    registry = build_registry({})
    store = build_store({})
    try:
        assert isinstance(registry, GuardedRegistry)
        assert isinstance(registry.backend, InMemoryProfessionalRegistry)
        assert len(registry.backend) == 0
        assert isinstance(store, GuardedStore)
        assert isinstance(store.backend, InMemoryLeadStore)
    finally:
        registry.close()
        store.close()


def test_registry_seeded_from_samples() -> None:
    registry = build_registry({"registry": {"seed": "samples", "name": "Seeded"}})
    try:
        assert registry.name == "Seeded"
        assert registry.get("prof_001").business_name == "Rocky Mountain Tile Supply"
    finally:
        registry.close()


def test_registry_seeded_from_spreadsheet(tmp_path) -> None:
    (tmp_path / "pros.csv").write_text(
        "id,role,email,name,zip,categories,radius,rating\n"
        "prof_a,vendor,a@example.com,Alpine Tile,80301,tiles;stone,40,4.2\n"
        "prof_b,architect,b@example.com,Nope,80301,tiles,40,4.0\n",
        encoding="utf-8",
    )

    registry = build_registry({"registry": {"seed": "pros.csv"}}, base_dir=tmp_path)
    try:
        profile = registry.get("prof_a")
        assert profile.product_categories == ["tiles", "stone"]
        assert profile.service_radius_miles == 40.0
        assert registry.get("prof_b") is None
    finally:
        registry.close()


def test_sqlite_backends_resolve_paths_relative_to_base_dir(tmp_path) -> None:
    config = {
        "registry": {"backend": "sqlite", "options": {"path": "data/registry.db"}},
        "store": {"backend": "sqlite", "options": {"path": "leads.db"}},
    }
    (tmp_path / "data").mkdir()

    registry = build_registry(config, base_dir=tmp_path)
    store = build_store(config, base_dir=tmp_path)
    try:
        assert isinstance(registry.backend, SqliteProfessionalRegistry)
        assert isinstance(store.backend, SqliteLeadStore)
        assert (tmp_path / "data" / "registry.db").exists()
        assert (tmp_path / "leads.db").exists()
    finally:
        registry.close()
        store.close()


def test_registry_class_path() -> None:
    registry = build_registry({"registry": {"class": f"{__name__}.CustomRegistry"}})
    try:
        assert isinstance(registry.backend, CustomRegistry)
        assert registry.name == "custom"
    finally:
        registry.close()


@pytest.mark.parametrize(
    "section",
    [
        {"backend": "postgres"},
        {"class": "NoModule"},
        {"class": "lead_matcher.registry.DoesNotExist"},
    ],
)
def test_invalid_backend_declarations(section) -> None:
    with pytest.raises(ConfigurationError):
        build_registry({"registry": section})


def test_disabled_fallback() -> None:
    assert build_fallback({"fallback": {"enabled": False}}) is None
    assert build_fallback({}) is not None


def test_geocoder_extended_with_zip_tables(tmp_path) -> None:
    (tmp_path / "zips.csv").write_text("zip,lat,lng\n59801,46.8721,-113.9940\n", encoding="utf-8")

    geocoder = build_geocoder({"geocoder": {"zip_tables": ["zips.csv"]}}, base_dir=tmp_path)

    assert "59801" in geocoder
    assert "80301" in geocoder


def test_build_engine_end_to_end(tmp_path) -> None:
    config = {
        "matching": {"max_results_per_role": 5},
        "registry": {"seed": "samples"},
        "store": {"backend": "sqlite", "options": {"path": "leads.db"}},
    }
    engine = build_engine(config, base_dir=tmp_path)
    try:
        outcome = engine.submit(
            LeadRequest("Jane", "jane@example.com", "80301", material_categories=["tiles"], is_looking_for_pro=True)
        )

        assert outcome.result.status == "partial"
        assert engine.store.get_lead(outcome.result.lead_id).status == "partial"
        assert engine.fallback_store is not None
    finally:
        engine.close()


def test_build_engine_without_memory_fallback_store() -> None:
    engine = build_engine({"store": {"memory_fallback": False}})
    try:
        assert engine.fallback_store is None
    finally:
        engine.close()
