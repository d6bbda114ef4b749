# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/ledger.py
"""
Persisted alert history.

The ledger maps each (entity, tier) alert key to the epoch-millis time it last
fired. It is the only durable state of the detector: it is loaded on first use,
mutated in memory during a cycle, and written back as a whole snapshot.

Snapshots go through a LedgerStore:
- json:   data/seen_migrations.json, rewritten atomically (default)
- sqlite: one alert_ledger table, replaced inside a transaction
- memory: in-process only (tests, dry runs)
"""
from __future__ import annotations
import json
import logging
import math
import os
import sqlite3
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from migrate_alerts.utils.time_utils import hours_to_ms, minutes_to_ms
from .models import AlertKey

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = minutes_to_ms(10)
DEFAULT_RETENTION_MS = hours_to_ms(24)
DEFAULT_LEDGER_PATH = Path("data/seen_migrations.json")

Snapshot = Dict[str, int]


class LedgerStore(Protocol):
    """
    Whole-snapshot persistence. read() never raises: a missing or unreadable
    snapshot is an empty one. write() may raise; the ledger logs it.
    """
    location: str

    def read(self) -> Snapshot: ...

    def write(self, snapshot: Snapshot) -> None: ...


def _coerce_snapshot(data, location: str) -> Snapshot:
    if not isinstance(data, dict):
        logger.warning(f"Ledger snapshot at {location} is not an object, starting empty")
        return {}
    snapshot: Snapshot = {}
    for key, value in data.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            logger.warning(f"Skipping ledger entry {key!r} with bad timestamp {value!r}")
            continue
        snapshot[str(key)] = int(value)
    return snapshot


class JsonFileLedgerStore:
    """JSON object on disk: {"<entity>_<tier>": last_fired_ms, ...}"""

    def __init__(self, path: Union[str, Path] = DEFAULT_LEDGER_PATH):
        self.path = Path(path)
        self.location = str(self.path)

    def read(self) -> Snapshot:
        if not self.path.exists():
            logger.info(f"No ledger at {self.path}, starting empty")
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error(f"Error loading ledger from {self.path}: {e}")
            return {}
        return _coerce_snapshot(data, self.location)

    def write(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SqliteLedgerStore:
    """Ledger snapshot kept in a single SQLite table."""

    def __init__(self, db_path: Union[str, Path] = Path("data/state/alert_ledger.db")):
        self.db_path = Path(db_path)
        self.location = str(self.db_path)

    def _init_db(self, conn: sqlite3.Connection):
        conn.execute("""
            CREATE TABLE IF NOT EXISTS alert_ledger (
                alert_key       TEXT    PRIMARY KEY,
                last_fired_ms   INTEGER NOT NULL
            )
        """)

    def read(self) -> Snapshot:
        if not self.db_path.exists():
            logger.info(f"No ledger database at {self.db_path}, starting empty")
            return {}
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            with conn:
                self._init_db(conn)
                rows = conn.execute("SELECT alert_key, last_fired_ms FROM alert_ledger").fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error loading ledger from {self.db_path}: {e}")
            return {}
        finally:
            if conn is not None:
                conn.close()
        return _coerce_snapshot(dict(rows), self.location)

    def write(self, snapshot: Snapshot) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                self._init_db(conn)
                conn.execute("DELETE FROM alert_ledger")
                conn.executemany(
                    "INSERT INTO alert_ledger (alert_key, last_fired_ms) VALUES (?, ?)",
                    sorted(snapshot.items()),
                )
        finally:
            conn.close()


class MemoryLedgerStore:
    def __init__(self, initial: Optional[Snapshot] = None):
        self.location = "memory"
        self._snapshot: Snapshot = dict(initial or {})

    def read(self) -> Snapshot:
        return dict(self._snapshot)

    def write(self, snapshot: Snapshot) -> None:
        self._snapshot = dict(snapshot)


def build_ledger_store(backend: str = "json", path: Union[str, Path, None] = None) -> LedgerStore:
    backend = (backend or "json").strip().lower()
    if backend == "json":
        return JsonFileLedgerStore(path or DEFAULT_LEDGER_PATH)
    if backend == "sqlite":
        return SqliteLedgerStore(path) if path else SqliteLedgerStore()
    if backend == "memory":
        return MemoryLedgerStore()
    raise ValueError(f"Unknown ledger backend '{backend}'. Expected one of: json, sqlite, memory")


class AlertLedger:
    """
    Previously-fired alert keys with their last-fired timestamps.

    should_fire() is read-only; record() and evict_older_than() mutate the
    in-memory map, and save() writes it back through the store. Entries are
    loaded lazily on first access.
    """

    def __init__(self, store: Optional[LedgerStore] = None):
        self.store = store or JsonFileLedgerStore()
        self._entries: Dict[AlertKey, int] = {}
        self._loaded = False

    def load(self) -> None:
        entries: Dict[AlertKey, int] = {}
        for raw_key, fired_ms in self.store.read().items():
            try:
                entries[AlertKey.parse(raw_key)] = fired_ms
            except ValueError:
                logger.warning(f"Skipping unrecognised ledger key {raw_key!r}")
        self._entries = entries
        self._loaded = True
        logger.debug(f"Loaded {len(entries)} ledger entries from {self.store.location}")

    def _ensure_loaded(self):
        if not self._loaded:
            self.load()

    def save(self) -> bool:
        """
        Persist the current entries. A failed write is logged and reported
        via the return value; in-memory state is kept either way.
        """
        self._ensure_loaded()
        snapshot = {key.serialize(): fired_ms for key, fired_ms in self._entries.items()}
        try:
            self.store.write(snapshot)
        except Exception as e:
            logger.error(f"Error saving ledger to {self.store.location}: {e}", exc_info=True)
            return False
        logger.debug(f"Saved {len(snapshot)} ledger entries to {self.store.location}")
        return True

    def should_fire(self, key: AlertKey, now_ms: int, cooldown_ms: int = DEFAULT_COOLDOWN_MS) -> bool:
        self._ensure_loaded()
        last = self._entries.get(key)
        if last is None:
            return True
        return now_ms - last > cooldown_ms

    def record(self, key: AlertKey, now_ms: int) -> None:
        self._ensure_loaded()
        self._entries[key] = now_ms

    def evict_older_than(self, now_ms: int, retention_ms: int = DEFAULT_RETENTION_MS) -> int:
        """Drop entries strictly older than retention_ms; returns how many were dropped."""
        self._ensure_loaded()
        expired = [k for k, fired_ms in self._entries.items() if now_ms - fired_ms > retention_ms]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired ledger entries")
        return len(expired)

    def clear(self) -> bool:
        self._entries = {}
        self._loaded = True
        logger.info(f"Cleared alert ledger at {self.store.location}")
        return self.save()

    def get(self, key: AlertKey) -> Optional[int]:
        self._ensure_loaded()
        return self._entries.get(key)

    def snapshot(self) -> Dict[AlertKey, int]:
        self._ensure_loaded()
        return dict(self._entries)

    def __contains__(self, key) -> bool:
        self._ensure_loaded()
        return key in self._entries

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._entries)
