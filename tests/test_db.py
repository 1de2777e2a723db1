"""Store tests against a throwaway SQLite database per test."""

from __future__ import annotations

import sqlite3

import pytest

from budget_ledger.db import LedgerStore
from budget_ledger.errors import DuplicateRecurringEntry, NotFoundError, ValidationError
from budget_ledger.models import (
    ExpenseEntry,
    IncomeEntry,
    RecurringExpenseTemplate,
    RecurringPreset,
    SavingsGoal,
)


def _expense(period_key='2025-01', amount=10.0, category='Food', **extra):
    return ExpenseEntry(
        id='', period_key=period_key, date=f'{period_key}-05', category=category, amount=amount, **extra
    )


def test_create_expense_assigns_fresh_id(store):
    stored = store.create_expense(_expense(notes='lunch'))
    assert stored.id
    rows = store.list_expenses('2025-01')
    assert [(r.id, r.notes, r.amount) for r in rows] == [(stored.id, 'lunch', 10.0)]
    assert [p.period_key for p in store.list_periods()] == ['2025-01']


def test_duplicate_recurring_expense_is_rejected(store):
    store.create_expense(_expense(recurring_template_id='rent'))
    with pytest.raises(DuplicateRecurringEntry):
        store.create_expense(_expense(recurring_template_id='rent'))
    # different month is fine
    store.create_expense(_expense(period_key='2025-02', recurring_template_id='rent'))
    assert len(store.list_expenses()) == 2


def test_duplicate_recurring_income_is_rejected(store):
    income = IncomeEntry(
        id='', period_key='2025-01', date='2025-01-01', description='Pay', amount=100.0,
        is_recurring=True, recurring_day_of_month=1, recurring_start_period='2025-01',
        recurring_template_id='pay',
    )
    store.create_income(income)
    with pytest.raises(DuplicateRecurringEntry):
        store.create_income(income)


def test_update_and_delete_missing_rows_raise(store):
    with pytest.raises(NotFoundError):
        store.update_expense(ExpenseEntry('nope', '2025-01', '2025-01-01', 'Food', 1.0))
    with pytest.raises(NotFoundError):
        store.delete_expense('nope')
    with pytest.raises(NotFoundError):
        store.delete_income('nope')


def test_rows_are_scoped_to_the_user(tmp_path):
    path = tmp_path / 'shared.db'
    alice = LedgerStore(path, user_id='alice')
    bob = LedgerStore(path, user_id='bob')
    alice.init_db()
    alice.create_expense(_expense())
    alice.create_category('Food', '#fff')
    assert bob.list_expenses() == []
    assert bob.list_categories() == []
    bob.create_category('Food', '#000')
    bob.clear_user_data()
    assert len(alice.list_expenses()) == 1
    assert alice.list_categories()[0].color == '#fff'


def test_duplicate_category_is_a_validation_error(store):
    store.create_category('Food', '#fff')
    with pytest.raises(ValidationError):
        store.create_category('Food', '#000')
    with pytest.raises(NotFoundError):
        store.delete_category('Travel')


def test_contribution_updates_running_total(store):
    goal = store.create_goal(SavingsGoal(id='', name='Trip', target_amount=1000, current_amount=100))
    store.add_contribution(goal.id, 50, '2025-01-10', 'first')
    store.add_contribution(goal.id, 25, '2025-01-20')
    [loaded] = store.list_savings_goals()
    assert loaded.current_amount == 175
    assert [c.amount for c in loaded.contributions] == [50, 25]
    with pytest.raises(NotFoundError):
        store.add_contribution('missing', 5, '2025-01-01')


def test_deleting_template_removes_generated_expenses(store):
    template = store.create_recurring_expense(RecurringExpenseTemplate(
        id='', description='Gym', amount=30, category='Health', day_of_month=1, start_period='2025-01',
    ))
    store.create_expense(_expense(recurring_template_id=template.id))
    store.create_expense(_expense(period_key='2025-02', recurring_template_id=template.id))
    store.create_expense(_expense())
    assert store.delete_recurring_expense(template.id) == 2
    assert len(store.list_expenses()) == 1
    assert store.list_recurring_expenses() == []


def test_reassign_category_moves_expenses_and_templates(store):
    store.create_expense(_expense(category='Snacks'))
    store.create_recurring_expense(RecurringExpenseTemplate(
        id='', description='Chips', amount=3, category='Snacks', day_of_month=2, start_period='2025-01',
    ))
    assert store.reassign_category('Snacks', 'Other') == 1
    assert store.list_expenses()[0].category == 'Other'
    assert store.list_recurring_expenses()[0].category == 'Other'


def test_budgets_upsert(store):
    store.set_budget('2025-01', 'Food', 100)
    store.set_budget('2025-01', 'Food', 150)
    store.set_budget('2025-02', 'Food', 90)
    assert store.list_budgets() == {'2025-01': {'Food': 150.0}, '2025-02': {'Food': 90.0}}
    assert store.delete_budgets_for_category('Food') == 2


def test_quick_note_lifecycle(store):
    note = store.create_quick_note('  coffee 4.50 ')
    assert note.text == 'coffee 4.50'
    processed_at = store.mark_quick_note_processed(note.id)
    [loaded] = store.list_quick_notes()
    assert loaded.processed and loaded.processed_at == processed_at
    with pytest.raises(ValidationError):
        store.create_quick_note('   ')


def test_frames_and_monthly_aggregates(store):
    store.upsert_period_salary('2025-01', 2000)
    store.create_expense(_expense(amount=300))
    store.create_expense(_expense(period_key='2025-02', amount=50))
    frame = store.expense_frame(start_period='2025-02')
    assert list(frame['Month']) == ['2025-02']
    aggregates = store.monthly_aggregates().set_index('Month')
    assert aggregates.loc['2025-01', 'Net'] == 1700
    assert aggregates.loc['2025-02', 'Income'] == 0


def test_load_snapshot_groups_entries_by_period(store):
    store.create_expense(_expense(period_key='2025-02'))
    store.create_expense(_expense(period_key='2025-01'))
    snapshot = store.load_snapshot()
    assert snapshot.period_keys == ['2025-01', '2025-02']
    assert all(len(p.expenses) == 1 for p in snapshot.periods)


def test_init_db_migrates_old_expense_table(tmp_path):
    path = tmp_path / 'old.db'
    conn = sqlite3.connect(str(path))
    conn.execute(
        "CREATE TABLE expenses (id TEXT PRIMARY KEY, user_id TEXT NOT NULL, month TEXT NOT NULL, "
        "date TEXT NOT NULL, category TEXT NOT NULL, amount REAL NOT NULL, notes TEXT)"
    )
    conn.execute(
        "INSERT INTO expenses VALUES ('e1', 'alice', '2024-05', '2024-05-01', 'Food', 12.0, 'old')"
    )
    conn.commit()
    conn.close()

    store = LedgerStore(path, user_id='alice')
    store.init_db()
    store.init_db()
    [expense] = store.list_expenses()
    assert expense.notes == 'old'
    assert expense.payment_method is None
    assert expense.recurring_template_id is None


def test_recurring_presets_are_listed_newest_first(store):
    first = store.create_recurring_preset(RecurringPreset('', 'Rent', 'Rent', 900.0, 'Housing', 1))
    second = store.create_recurring_preset(RecurringPreset('', 'Gym', 'Gym', 30.0, 'Health', 5, 'Card'))
    assert [p.id for p in store.list_recurring_presets()] == [second.id, first.id]
    store.delete_recurring_preset(first.id)
    assert [p.name for p in store.load_snapshot().recurring_presets] == ['Gym']
    with pytest.raises(NotFoundError):
        store.delete_recurring_preset(first.id)
