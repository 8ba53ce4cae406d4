import threading
from datetime import datetime, timedelta, timezone

from lead_matcher.models import LeadIndexEntry, LeadSummary
from lead_matcher.store import LeadIndex

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _entry(professional_id: str, lead_id: str, minutes: int = 0) -> LeadIndexEntry:
    summary = LeadSummary(
        lead_id=lead_id,
        customer_name="Jane",
        zip_code="80301",
        categories=("tiles",),
        created_at=BASE + timedelta(minutes=minutes),
    )
    return LeadIndexEntry(professional_id=professional_id, role="vendor", lead=summary, distance_miles=1.0)


def test_entries_are_returned_newest_first() -> None:
    index = LeadIndex()
    index.add_all([_entry("prof_1", "lead-a", 0), _entry("prof_1", "lead-c", 20), _entry("prof_1", "lead-b", 10)])

    assert [entry.lead.lead_id for entry in index.entries_for("prof_1")] == ["lead-c", "lead-b", "lead-a"]
    assert index.entries_for("prof_unknown") == []


def test_adding_the_same_lead_twice_replaces_it() -> None:
    index = LeadIndex()
    index.add(_entry("prof_1", "lead-a"))
    index.add(_entry("prof_1", "lead-a", 5))

    assert len(index) == 1
    assert index.entries_for("prof_1")[0].lead.created_at == BASE + timedelta(minutes=5)


def test_discard_and_clear() -> None:
    index = LeadIndex()
    index.add_all([_entry("prof_1", "lead-a"), _entry("prof_2", "lead-a"), _entry("prof_2", "lead-b")])

    index.discard("lead-a", ["prof_1", "prof_2", "prof_3"])

    assert index.entries_for("prof_1") == []
    assert [entry.lead.lead_id for entry in index.entries_for("prof_2")] == ["lead-b"]

    index.clear()
    assert len(index) == 0


def test_concurrent_writers_do_not_lose_entries() -> None:
    index = LeadIndex()
    professionals = [f"prof_{number}" for number in range(5)]
    barrier = threading.Barrier(8)

    def writer(worker: int) -> None:
        barrier.wait()
        for number in range(200):
            index.add(_entry(professionals[number % len(professionals)], f"lead-{worker}-{number}", number))

    threads = [threading.Thread(target=writer, args=(worker,)) for worker in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(index) == 8 * 200
    assert sum(len(index.entries_for(professional)) for professional in professionals) == 8 * 200
