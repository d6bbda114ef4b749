# tests/test_ledger.py
import json
import sqlite3

import pytest

from migrate_alerts.alerts.ledger import (
    AlertLedger,
    JsonFileLedgerStore,
    MemoryLedgerStore,
    SqliteLedgerStore,
    build_ledger_store,
)
from migrate_alerts.alerts.models import AlertKey
from migrate_alerts.alerts.tiers import Tier

COOLDOWN = 10 * 60 * 1000
RETENTION = 24 * 60 * 60 * 1000
T = 1_700_000_000_000

KEY = AlertKey("So1anaAddr", Tier.IMMINENT)


def test_empty_ledger_fires(ledger):
    assert ledger.should_fire(KEY, T, COOLDOWN) is True


def test_cooldown_window(ledger):
    ledger.record(KEY, T)
    assert ledger.should_fire(KEY, T + COOLDOWN - 1, COOLDOWN) is False
    assert ledger.should_fire(KEY, T + COOLDOWN, COOLDOWN) is False
    assert ledger.should_fire(KEY, T + COOLDOWN + 1, COOLDOWN) is True


def test_should_fire_does_not_mutate(ledger):
    ledger.should_fire(KEY, T, COOLDOWN)
    assert len(ledger) == 0


def test_record_is_idempotent(ledger):
    ledger.record(KEY, T)
    ledger.record(KEY, T)
    assert ledger.snapshot() == {KEY: T}


def test_tiers_are_independent_keys(ledger):
    ledger.record(KEY, T)
    other = AlertKey(KEY.entity_id, Tier.SOON)
    assert ledger.should_fire(other, T, COOLDOWN) is True


def test_eviction_boundary(ledger):
    at_boundary = AlertKey("a", Tier.SOON)
    over = AlertKey("b", Tier.SOON)
    ledger.record(at_boundary, T)
    ledger.record(over, T - 1)

    evicted = ledger.evict_older_than(T + RETENTION, RETENTION)

    assert evicted == 1
    assert at_boundary in ledger
    assert over not in ledger


def test_save_and_reload_json(tmp_path):
    path = tmp_path / "state" / "seen_migrations.json"
    ledger = AlertLedger(JsonFileLedgerStore(path))
    ledger.record(KEY, T)
    ledger.record(AlertKey("token_with_underscores", Tier.UPCOMING), T + 5)
    assert ledger.save() is True

    on_disk = json.loads(path.read_text())
    assert on_disk == {"So1anaAddr_imminent": T, "token_with_underscores_upcoming": T + 5}

    reloaded = AlertLedger(JsonFileLedgerStore(path))
    assert reloaded.get(KEY) == T
    assert reloaded.get(AlertKey("token_with_underscores", Tier.UPCOMING)) == T + 5


def test_missing_file_loads_empty(tmp_path):
    ledger = AlertLedger(JsonFileLedgerStore(tmp_path / "nope.json"))
    assert len(ledger) == 0


def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "seen.json"
    path.write_text("{not json")
    ledger = AlertLedger(JsonFileLedgerStore(path))
    assert len(ledger) == 0
    assert ledger.should_fire(KEY, T, COOLDOWN) is True


def test_non_object_json_loads_empty(tmp_path):
    path = tmp_path / "seen.json"
    path.write_text("[1, 2, 3]")
    assert JsonFileLedgerStore(path).read() == {}


def test_malformed_entries_are_skipped(tmp_path):
    path = tmp_path / "seen.json"
    path.write_text(json.dumps({
        "good_soon": T,
        "bad_timestamp_soon": "yesterday",
        "bad-tier_later": T,
        "notier": T,
    }))
    ledger = AlertLedger(JsonFileLedgerStore(path))
    assert ledger.snapshot() == {AlertKey("good", Tier.SOON): T}


def test_non_finite_timestamps_are_skipped(tmp_path):
    path = tmp_path / "seen.json"
    path.write_text('{"ABC_soon": NaN, "DEF_soon": Infinity, "GHI_soon": -Infinity, "good_soon": ' + str(T) + "}")
    ledger = AlertLedger(JsonFileLedgerStore(path))
    assert ledger.snapshot() == {AlertKey("good", Tier.SOON): T}
    assert ledger.should_fire(AlertKey("ABC", Tier.SOON), T, COOLDOWN) is True


def test_write_failure_is_logged_not_raised(caplog):
    class BrokenStore(MemoryLedgerStore):
        def write(self, snapshot):
            raise OSError("disk full")

    ledger = AlertLedger(BrokenStore())
    ledger.record(KEY, T)
    assert ledger.save() is False
    # in-memory decision still stands
    assert ledger.should_fire(KEY, T + 1, COOLDOWN) is False
    assert "disk full" in caplog.text


def test_sqlite_round_trip(tmp_path):
    db = tmp_path / "ledger.db"
    ledger = AlertLedger(SqliteLedgerStore(db))
    ledger.record(KEY, T)
    assert ledger.save() is True

    ledger.evict_older_than(T + RETENTION + 1, RETENTION)
    ledger.save()

    with sqlite3.connect(db) as conn:
        count = conn.execute("SELECT COUNT(*) FROM alert_ledger").fetchone()[0]
    assert count == 0


def test_sqlite_corrupt_db_loads_empty(tmp_path):
    db = tmp_path / "ledger.db"
    db.write_bytes(b"this is not a database")
    assert SqliteLedgerStore(db).read() == {}


def test_clear_persists(tmp_path):
    path = tmp_path / "seen.json"
    ledger = AlertLedger(JsonFileLedgerStore(path))
    ledger.record(KEY, T)
    ledger.save()

    assert ledger.clear() is True
    assert json.loads(path.read_text()) == {}


def test_build_ledger_store(tmp_path):
    assert isinstance(build_ledger_store("json", tmp_path / "a.json"), JsonFileLedgerStore)
    assert isinstance(build_ledger_store("SQLite", tmp_path / "a.db"), SqliteLedgerStore)
    assert isinstance(build_ledger_store("memory"), MemoryLedgerStore)
    with pytest.raises(ValueError):
        build_ledger_store("redis")


def test_sqlite_read_closes_connection(tmp_path, monkeypatch):
    db = tmp_path / "ledger.db"
    SqliteLedgerStore(db).write({"ABC_soon": T})

    opened = []
    real_connect = sqlite3.connect

    def tracking_connect(*args, **kwargs):
        conn = real_connect(*args, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(sqlite3, "connect", tracking_connect)
    assert SqliteLedgerStore(db).read() == {"ABC_soon": T}
    assert len(opened) == 1
    with pytest.raises(sqlite3.ProgrammingError):
        opened[0].execute("SELECT 1")
