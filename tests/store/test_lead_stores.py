import threading
from datetime import datetime, timedelta, timezone

import pytest

from lead_matcher.geo import GeoPoint
from lead_matcher.models import LeadRequest, MatchedProfessional, MatchResult, TradeProfile, VendorProfile
from lead_matcher.store import InMemoryLeadStore, SqliteLeadStore

BASE = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

VENDOR = VendorProfile(
    email="vendor@example.com",
    name="Rocky Tile",
    zip_code="80301",
    uid="prof_v",
    location=GeoPoint(40.0150, -105.2705),
    product_categories=["tiles"],
    rating=4.8,
)
TRADE = TradeProfile(
    email="trade@example.com",
    name="Denver Flooring",
    zip_code="80202",
    uid="prof_t",
    location=GeoPoint(39.7547, -105.0178),
    trade_categories=["tiles"],
    rating=4.9,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryLeadStore()
        return
    backend = SqliteLeadStore(tmp_path / "leads.db")
    yield backend
    backend.close()


def _lead(lead_id: str, minutes: int = 0, **overrides) -> LeadRequest:
    values = {
        "customer_name": "Jane Doe",
        "customer_email": "Jane@Example.com",
        "zip_code": "80301",
        "material_categories": ["tiles"],
        "lead_id": lead_id,
        "created_at": BASE + timedelta(minutes=minutes),
        "intent_score": 6,
        "urgency": "medium",
    }
    values.update(overrides)
    return LeadRequest(**values)


def _result(lead: LeadRequest, vendors=(VENDOR,), trades=(TRADE,)) -> MatchResult:
    return MatchResult.build(
        lead.lead_id,
        [MatchedProfessional(profile, 0.5, 0.1) for profile in vendors],
        [MatchedProfessional(profile, 22.4, 15.7) for profile in trades],
        created_at=lead.created_at,
    )


def test_save_and_get_lead(store) -> None:
    lead = _lead("lead-1", budget=2500.0, is_looking_for_pro=True)

    record = store.save(lead, _result(lead))
    loaded = store.get_lead("lead-1")

    assert record.status == "partial"
    assert loaded.status == "partial"
    assert loaded.lead == lead
    assert loaded.match.total_matches == 2
    assert [match.uid for match in loaded.match.matched_trades] == ["prof_t"]
    assert loaded.match.matched_trades[0].distance_miles == 22.4
    assert store.get_lead("lead-missing") is None


def test_explicit_status_overrides_result_status(store) -> None:
    lead = _lead("lead-1", zip_code="99999")

    store.save(lead, MatchResult.empty("lead-1"), status="unmatched")

    assert store.get_lead("lead-1").status == "unmatched"
    assert store.get_lead("lead-1").match.status == "no_match"


def test_matches_for_professional_are_newest_first(store) -> None:
    for minutes, lead_id in [(0, "lead-a"), (30, "lead-c"), (15, "lead-b")]:
        lead = _lead(lead_id, minutes)
        store.save(lead, _result(lead))

    entries = store.get_matches_for_professional("prof_v")

    assert [entry.lead.lead_id for entry in entries] == ["lead-c", "lead-b", "lead-a"]
    assert entries[0].role == "vendor"
    assert entries[0].lead.urgency == "medium"
    assert entries[0].lead.created_at == BASE + timedelta(minutes=30)
    assert [entry.role for entry in store.get_matches_for_professional("prof_t")] == ["trade"] * 3
    assert store.get_matches_for_professional("prof_nobody") == []


def test_resaving_a_lead_replaces_its_index_entries(store) -> None:
    lead = _lead("lead-1")
    store.save(lead, _result(lead))

    store.save(lead, _result(lead, trades=()))

    assert [entry.lead.lead_id for entry in store.get_matches_for_professional("prof_v")] == ["lead-1"]
    assert store.get_matches_for_professional("prof_t") == []


def test_leads_by_customer_accepts_email_or_uid(store) -> None:
    first = _lead("lead-1", 0, customer_uid="cust-9")
    second = _lead("lead-2", 10, customer_email="jane@example.com")
    other = _lead("lead-3", 20, customer_email="someone@example.com")
    for lead in (first, second, other):
        store.save(lead, _result(lead))

    by_email = store.get_leads_by_customer("JANE@example.com")
    by_uid = store.get_leads_by_customer("cust-9")

    assert [record.lead_id for record in by_email] == ["lead-2", "lead-1"]
    assert [record.lead_id for record in by_uid] == ["lead-1"]
    assert store.get_leads_by_customer("") == []


def test_rebuild_index_restores_entries(store) -> None:
    for minutes, lead_id in [(0, "lead-a"), (5, "lead-b")]:
        lead = _lead(lead_id, minutes)
        store.save(lead, _result(lead))

    assert store.rebuild_index() == 4
    assert [entry.lead.lead_id for entry in store.get_matches_for_professional("prof_t")] == ["lead-b", "lead-a"]


def test_sqlite_store_persists_across_connections(tmp_path) -> None:
    path = tmp_path / "leads.db"
    lead = _lead("lead-1")
    first = SqliteLeadStore(path)
    first.save(lead, _result(lead))
    first.close()

    second = SqliteLeadStore(path)
    try:
        assert second.get_lead("lead-1").lead.customer_email == "Jane@Example.com"
        assert len(second.get_matches_for_professional("prof_v")) == 1
    finally:
        second.close()


def test_concurrent_saves_of_one_lead_leave_a_consistent_index(store) -> None:
    lead = _lead("lead-race")
    vendor_only = _result(lead, trades=())
    trade_only = _result(lead, vendors=())
    start = threading.Barrier(2)

    def hammer(result: MatchResult) -> None:
        start.wait()
        for _ in range(200):
            store.save(lead, result)

    threads = [threading.Thread(target=hammer, args=(result,)) for result in (vendor_only, trade_only)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = store.get_lead("lead-race").match
    indexed = {
        uid
        for uid in ("prof_v", "prof_t")
        if any(entry.lead.lead_id == "lead-race" for entry in store.get_matches_for_professional(uid))
    }
    assert indexed == {match.uid for match in final.all_matches}
