from datetime import datetime, timezone

import pytest

from rate_agents import rollover_agent
from rate_agents.errors import StorageIOError
from rate_agents.record import RateRecord
from rate_agents.rollover_agent import partition_by_month, rollover
from rate_agents.store_agent import StoreLocator, load, save

JULY = datetime(2025, 7, 15, 12, tzinfo=timezone.utc)


def rec(ts, rate):
    return RateRecord.from_strings(ts, str(rate))


def test_partition_by_record_month():
    parts = partition_by_month([rec("2025-06-30T23:00:00Z", 0.04), rec("2025-07-01T01:00:00Z", 0.05)])
    assert sorted(parts) == ["2025-06", "2025-07"]


def test_rollover_noop_without_live_store(tmp_path):
    loc = StoreLocator(tmp_path)
    report = rollover(loc, now=JULY)
    assert not report.rolled_over
    assert not loc.path().exists()


def test_rollover_archives_past_month(tmp_path):
    loc = StoreLocator(tmp_path)
    save(loc.path(), [rec("2025-06-30T23:00:00Z", 0.04), rec("2025-07-01T01:00:00Z", 0.05)])

    report = rollover(loc, now=JULY)

    assert report.archived == {"2025-06": 1}
    assert report.kept == 1
    assert loc.path().read_text() == "timestamp,preRate\n2025-07-01T01:00:00.000Z,0.05\n"
    assert loc.path("2025-06").read_text() == "timestamp,preRate\n2025-06-30T23:00:00.000Z,0.04\n"


def test_rollover_is_idempotent(tmp_path):
    loc = StoreLocator(tmp_path)
    save(loc.path(), [
        rec("2025-05-31T10:00:00Z", 0.03),
        rec("2025-06-30T23:00:00Z", 0.04),
        rec("2025-07-01T01:00:00Z", 0.05),
    ])
    rollover(loc, now=JULY)
    first = {p.name: p.read_text() for p in tmp_path.glob("*.csv")}

    report = rollover(loc, now=JULY)
    second = {p.name: p.read_text() for p in tmp_path.glob("*.csv")}

    assert not report.rolled_over
    assert first == second
    assert sorted(first) == ["2025-05.csv", "2025-06.csv", "rates.csv"]


def test_rollover_merges_into_existing_archive(tmp_path):
    loc = StoreLocator(tmp_path)
    save(loc.path("2025-06"), [rec("2025-06-30T22:00:00Z", 0.03), rec("2025-06-30T23:00:00Z", 0.04)])
    save(loc.path(), [rec("2025-06-30T23:30:00Z", 0.09), rec("2025-06-01T00:00:00Z", 0.01)])

    rollover(loc, now=JULY)

    archived = load(loc.path("2025-06"))
    assert [(r.bucket, r.rate) for r in archived] == [
        ("2025-06-01T00", 0.01),
        ("2025-06-30T22", 0.03),
        ("2025-06-30T23", 0.04),
    ]
    assert load(loc.path()) == []
    assert loc.path().read_text() == "timestamp,preRate\n"


def test_rollover_partition_completeness(tmp_path):
    loc = StoreLocator(tmp_path)
    live = [
        rec("2025-04-02T00:00:00Z", 0.01),
        rec("2025-05-02T00:00:00Z", 0.02),
        rec("2025-07-02T00:00:00Z", 0.03),
        rec("2025-07-03T00:00:00Z", 0.04),
    ]
    save(loc.path(), live)
    rollover(loc, now=JULY)

    assert all(r.month_key == "2025-07" for r in load(loc.path()))
    seen = list(load(loc.path()))
    for key in loc.archive_keys():
        archived = load(loc.path(key))
        assert all(r.month_key == key for r in archived)
        seen.extend(archived)
    assert sorted(seen, key=lambda r: r.timestamp) == live


def test_rollover_failed_archive_write_leaves_live_store(tmp_path, monkeypatch):
    loc = StoreLocator(tmp_path)
    save(loc.path(), [
        rec("2025-05-31T10:00:00Z", 0.03),
        rec("2025-06-30T23:00:00Z", 0.04),
        rec("2025-07-01T01:00:00Z", 0.05),
    ])
    before = loc.path().read_text()
    written = []

    def failing_save(path, records, mode="overwrite"):
        written.append(path.name)
        if path.name == "2025-06.csv":
            raise StorageIOError(f"cannot write {path}: disk full")
        save(path, records, mode=mode)

    monkeypatch.setattr(rollover_agent, "save", failing_save)
    with pytest.raises(StorageIOError):
        rollover(loc, now=JULY)

    assert written == ["2025-05.csv", "2025-06.csv"]
    assert loc.path().read_text() == before
