# Ensure `src/` is on sys.path so tests can import `migrate_alerts` without requiring editable install
import os
import sys
from datetime import datetime, timezone

import pytest

HERE = os.path.dirname(__file__)
SRC = os.path.abspath(os.path.join(HERE, "..", "src"))
if os.path.isdir(SRC) and SRC not in sys.path:
    sys.path.insert(0, SRC)

from migrate_alerts.alerts.ledger import AlertLedger, MemoryLedgerStore  # noqa: E402
from migrate_alerts.alerts.models import RawObservation  # noqa: E402

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def obs_factory():
    def make(name="ABC", time_text="10m", identifier=None, **kwargs):
        kwargs.setdefault("raw_text", f"{name} migrating in {time_text}")
        kwargs.setdefault("observed_at", T0)
        return RawObservation(
            display_name=name,
            identifier=identifier,
            time_text=time_text,
            **kwargs,
        )
    return make


@pytest.fixture
def memory_store():
    return MemoryLedgerStore()


@pytest.fixture
def ledger(memory_store):
    return AlertLedger(memory_store)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    # Default ledger paths are relative; keep them inside the test's tmp dir
    monkeypatch.chdir(tmp_path)
