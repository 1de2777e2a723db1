from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from budget_ledger.db import LedgerStore  # noqa: E402
from budget_ledger.ledger import LedgerSession  # noqa: E402


@pytest.fixture
def store(tmp_path):
    ledger_store = LedgerStore(tmp_path / "ledger.db", user_id="alice")
    ledger_store.init_db()
    return ledger_store


@pytest.fixture
def session(store):
    ledger_session = LedgerSession(store, forward_months=12)
    ledger_session.load()
    return ledger_session
