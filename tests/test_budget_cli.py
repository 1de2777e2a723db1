"""Smoke tests for the command line script."""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path

from budget_ledger.db import LedgerStore
from budget_ledger.ledger import LedgerSession

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "budget_cli.py"


def _load_cli():
    spec = importlib.util.spec_from_file_location("budget_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _seed(db_path):
    store = LedgerStore(db_path, user_id='local')
    store.init_db()
    session = LedgerSession(store)
    session.load()
    session.set_salary('2025-01', 1000)
    session.add_expense('2025-01-03', 'Category 1', 150.0, notes='groceries')
    session.set_budget('2025-01', 'Category 1', 120)
    return store


def test_report_prints_budget_alerts(tmp_path, capsys):
    db_path = tmp_path / 'cli.db'
    _seed(db_path)
    cli = _load_cli()
    assert cli.main(['--db', str(db_path), '--user', 'local', 'report', '--month', '2025-01']) == 0
    out = capsys.readouterr().out
    assert 'Month: 2025-01' in out
    assert 'Over Budget' in out
    assert 'Category 1: 125.0% of budget used' in out


def test_backup_restore_and_clear(tmp_path, capsys):
    db_path = tmp_path / 'cli.db'
    store = _seed(db_path)
    cli = _load_cli()
    backup_path = tmp_path / 'backup.json'
    assert cli.main(['--db', str(db_path), 'backup', '--output', str(backup_path)]) == 0
    assert json.loads(backup_path.read_text())['version'] == '1.0'

    assert cli.main(['--db', str(db_path), 'clear']) == 2
    assert cli.main(['--db', str(db_path), 'clear', '--yes']) == 0
    assert store.list_expenses() == []

    assert cli.main(['--db', str(db_path), 'restore', str(backup_path)]) == 0
    assert len(store.list_expenses()) == 1


def test_restore_of_bad_file_fails_cleanly(tmp_path, capsys):
    bad = tmp_path / 'bad.json'
    bad.write_text('[]')
    cli = _load_cli()
    assert cli.main(['--db', str(tmp_path / 'cli.db'), 'restore', str(bad)]) == 1
    assert 'Error:' in capsys.readouterr().err


def test_history_lists_months_and_categories(tmp_path, capsys):
    db_path = tmp_path / 'cli.db'
    _seed(db_path)
    cli = _load_cli()
    assert cli.main(['--db', str(db_path), '--user', 'local', 'history', '--from', '2025-01']) == 0
    out = capsys.readouterr().out
    assert '2025-01' in out
    assert '$850.00' in out
    assert 'Spending by category:' in out
    assert 'Category 1' in out and '$150.00' in out

    assert cli.main(['--db', str(db_path), '--user', 'local', 'history', '--from', '2026-01']) == 0
    assert 'No months recorded.' in capsys.readouterr().out
