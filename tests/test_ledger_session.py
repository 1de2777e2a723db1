"""Session behaviour: write-through, rollback, reconciliation and cascades."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date

import pytest

from budget_ledger.defaults import INITIAL_CATEGORIES, OTHER_CATEGORY, PALETTE_COLORS
from budget_ledger.errors import NotFoundError, ProtectedCategoryError, ValidationError
from budget_ledger.ledger import LedgerSession


def _fail(*args, **kwargs):
    raise sqlite3.OperationalError('database is locked')


def _reloaded(session):
    fresh = LedgerSession(session.store)
    fresh.load()
    return fresh


def test_load_seeds_a_new_account(session):
    assert session.snapshot.category_names == INITIAL_CATEGORIES
    assert _reloaded(session).snapshot.category_names == INITIAL_CATEGORIES


def test_add_expense_is_written_through(session):
    expense = session.add_expense('2025-03-04', 'Category 1', 42.0, notes='books')
    [stored] = session.store.list_expenses()
    assert stored.id == expense.id
    assert session.snapshot.period('2025-03').expenses == [expense]


def test_failed_write_rolls_back_local_change(session, monkeypatch):
    monkeypatch.setattr(session.store, 'create_expense', _fail)
    with pytest.raises(sqlite3.OperationalError):
        session.add_expense('2025-03-04', 'Category 1', 42.0)
    assert session.snapshot.period('2025-03') is None
    assert list(session.snapshot.iter_expenses()) == []


def test_failed_delete_restores_entry_in_place(session, monkeypatch):
    first = session.add_expense('2025-03-01', 'Category 1', 1.0)
    second = session.add_expense('2025-03-02', 'Category 1', 2.0)
    monkeypatch.setattr(session.store, 'delete_expense', _fail)
    with pytest.raises(sqlite3.OperationalError):
        session.delete_expense(first.id)
    assert [e.id for e in session.snapshot.period('2025-03').expenses] == [first.id, second.id]


def test_update_expense_moves_between_periods(session):
    expense = session.add_expense('2025-03-01', 'Category 1', 10.0)
    expense.date = '2025-04-02'
    expense.amount = 12.0
    session.update_expense(expense)
    assert session.snapshot.period('2025-03').expenses == []
    [moved] = session.snapshot.period('2025-04').expenses
    assert moved.period_key == '2025-04'
    [stored] = session.store.list_expenses()
    assert (stored.period_key, stored.amount) == ('2025-04', 12.0)


def test_invalid_amount_is_rejected(session):
    with pytest.raises(ValidationError):
        session.add_expense('2025-03-01', 'Category 1', 0)
    with pytest.raises(NotFoundError):
        session.delete_expense('missing')


def test_recurring_expense_reconcile_is_idempotent(session):
    for key in ['2025-01', '2025-02', '2025-03', '2025-04']:
        session.set_salary(key, 1000)
    template = session.add_recurring_expense('Rent', 900, 'Category 1', 31, '2025-01')

    summary = session.reconcile()
    dates = sorted(e.date for e in session.snapshot.iter_expenses())
    assert summary.created == 4
    assert dates == ['2025-01-31', '2025-02-28', '2025-03-31', '2025-04-30']

    assert session.reconcile().coalesced
    assert session.reconcile(force=True).created == 0
    assert _reloaded(session).reconcile().created == 0
    assert all(e.recurring_template_id == template.id for e in session.store.list_expenses())


def test_reconcile_counts_failures_and_continues(session, monkeypatch):
    for key in ['2025-01', '2025-02', '2025-03']:
        session.set_salary(key, 1000)
    session.add_recurring_expense('Gym', 30, 'Category 2', 1, '2025-01')
    original = session.store.create_expense

    def flaky(entry):
        if entry.period_key == '2025-02':
            raise sqlite3.OperationalError('disk I/O error')
        return original(entry)

    monkeypatch.setattr(session.store, 'create_expense', flaky)
    summary = session.reconcile()
    assert summary.created == 2
    assert summary.failed == 1
    assert len(session.store.list_expenses()) == 2

    monkeypatch.setattr(session.store, 'create_expense', original)
    assert session.reconcile().coalesced
    assert session.reconcile(force=True).created == 1


def test_recurring_income_generates_thirteen_months(session):
    source = session.add_income(
        '2025-01-15', 'Salary', 3000, source_type='salary', is_recurring=True
    )
    rows = [i for i in session.store.list_income() if i.recurring_template_id == source.recurring_template_id]
    assert len(rows) == 13
    assert rows[0].period_key == '2025-01'
    assert rows[-1].period_key == '2026-01'
    assert all(r.date.endswith('-15') for r in rows)
    assert _reloaded(session).reconcile().created == 0


def test_forward_generation_failure_keeps_source(session, monkeypatch):
    original = session.store.create_income

    def flaky(entry):
        if entry.period_key == '2025-06':
            raise sqlite3.OperationalError('disk I/O error')
        return original(entry)

    monkeypatch.setattr(session.store, 'create_income', flaky)
    session.add_income('2025-01-31', 'Salary', 3000, is_recurring=True)
    incomes = session.store.list_income()
    assert len(incomes) == 12
    assert '2025-02-28' in [i.date for i in incomes]


def test_delete_category_reassigns_to_other(session):
    session.add_expense('2025-03-01', 'Category 1', 10.0)
    session.add_expense('2025-03-02', 'Category 2', 20.0)
    session.set_budget('2025-03', 'Category 1', 100)
    assert session.delete_category('Category 1') == 1

    fresh = _reloaded(session)
    categories = [e.category for e in fresh.snapshot.iter_expenses()]
    assert categories == [OTHER_CATEGORY, 'Category 2']
    assert 'Category 1' not in fresh.snapshot.category_names
    assert fresh.snapshot.budgets.get('2025-03', {}) == {}
    assert [e.category for e in session.snapshot.iter_expenses()] == categories


def test_other_category_is_protected(session):
    with pytest.raises(ProtectedCategoryError):
        session.delete_category(OTHER_CATEGORY)
    assert OTHER_CATEGORY in session.store.load_snapshot().category_names


def test_new_category_colour_comes_from_palette(session):
    category = session.add_category('Travel')
    assert category.color == PALETTE_COLORS[len(INITIAL_CATEGORIES) % len(PALETTE_COLORS)]
    with pytest.raises(ValidationError):
        session.add_category('Travel')


def test_delete_payment_method_clears_expenses(session):
    session.add_expense('2025-03-01', 'Category 1', 10.0, payment_method='Payment Method 1')
    assert session.delete_payment_method('Payment Method 1') == 1
    [stored] = session.store.list_expenses()
    assert stored.payment_method is None
    assert 'Payment Method 1' not in session.snapshot.payment_method_names


def test_delete_recurring_expense_removes_generated(session):
    session.set_salary('2025-01', 0)
    session.set_salary('2025-02', 0)
    template = session.add_recurring_expense('Rent', 900, 'Category 1', 1, '2025-01')
    session.add_expense('2025-01-10', 'Category 2', 5.0)
    session.reconcile()
    assert session.delete_recurring_expense(template.id) == 2
    assert [e.amount for e in session.snapshot.iter_expenses()] == [5.0]
    assert len(session.store.list_expenses()) == 1


def test_invalid_recurring_template_is_rejected(session):
    with pytest.raises(ValidationError):
        session.add_recurring_expense('Rent', 900, 'Category 1', 32, '2025-01')
    assert session.store.list_recurring_expenses() == []


def test_contribution_grows_goal(session, monkeypatch):
    goal = session.add_savings_goal('Car', 5000, '2026-06-30')
    session.add_contribution(goal.id, 250, '2025-02-01')
    assert goal.current_amount == 250
    monkeypatch.setattr(session.store, 'add_contribution', _fail)
    with pytest.raises(sqlite3.OperationalError):
        session.add_contribution(goal.id, 100, '2025-02-02')
    assert goal.current_amount == 250
    assert len(goal.contributions) == 1
    assert session.store.list_savings_goals()[0].current_amount == 250


def test_update_and_delete_savings_goal(session):
    goal = session.add_savings_goal('Car', 5000, '2026-06-30')
    goal.target_amount = 6000
    session.update_savings_goal(goal)
    assert session.store.list_savings_goals()[0].target_amount == 6000
    session.delete_savings_goal(goal.id)
    assert session.snapshot.savings_goals == []
    assert session.store.list_savings_goals() == []


def test_quick_note_converts_to_expense(session):
    note = session.add_quick_note('Lunch with team $18.75')
    expense = session.convert_quick_note(note.id, today=date(2025, 5, 9))
    assert (expense.date, expense.amount, expense.category) == ('2025-05-09', 18.75, OTHER_CATEGORY)
    assert expense.notes == 'Lunch with team $18.75'
    assert session.pending_quick_notes() == []
    with pytest.raises(ValidationError):
        session.convert_quick_note(note.id)

    empty = session.add_quick_note('call the bank')
    with pytest.raises(ValidationError):
        session.convert_quick_note(empty.id)
    session.delete_quick_note(empty.id)
    assert session.store.list_quick_notes()[0].processed


def test_analytics_reflects_session_state(session):
    session.set_salary('2025-03', 2000)
    session.add_expense('2025-03-01', 'Category 1', 150.0)
    session.set_budget('2025-03', 'Category 1', 120)
    status = session.analytics().budget_status('2025-03')
    assert status['Category 1']['status'] == 'Over Budget'
    assert session.analytics().balance('2025-03') == 1850.0


def test_reconcile_runs_again_when_a_month_is_added(session):
    session.add_recurring_expense('Rent', 20, OTHER_CATEGORY, 31, '2025-01')
    session.add_expense('2025-01-05', 'Category 1', 5.0)
    assert session.reconcile().created == 1

    session.set_salary('2025-02', 1000)
    summary = session.reconcile()
    assert not summary.coalesced
    assert [e.date for e in session.snapshot.period('2025-02').expenses] == ['2025-02-28']


def test_moving_an_expense_to_a_new_month_reconciles_it(session):
    session.add_recurring_expense('Gym', 30, 'Category 2', 1, '2025-01')
    expense = session.add_expense('2025-01-05', 'Category 1', 5.0)
    session.reconcile()
    expense.date = '2025-03-05'
    session.update_expense(expense)
    session.reconcile()
    generated = [e.date for e in session.snapshot.iter_expenses() if e.recurring_template_id]
    assert generated == ['2025-01-01', '2025-03-01']


def test_failed_move_drops_the_new_month(session, monkeypatch):
    expense = session.add_expense('2025-01-05', 'Category 1', 5.0)
    income = session.add_income('2025-01-10', 'Bonus', 50.0)
    monkeypatch.setattr(session.store, 'update_expense', _fail)
    monkeypatch.setattr(session.store, 'update_income', _fail)

    moved = session.snapshot.period('2025-01').expenses[0]
    moved_income = session.snapshot.period('2025-01').income[0]
    with pytest.raises(sqlite3.OperationalError):
        session.update_expense(replace(moved, date='2025-06-05'))
    with pytest.raises(sqlite3.OperationalError):
        session.update_income(replace(moved_income, date='2025-07-10'))

    assert session.snapshot.period_keys == ['2025-01']
    assert session.snapshot.period('2025-01').expenses[0].id == expense.id
    assert session.snapshot.period('2025-01').income[0].id == income.id


def test_recurring_income_day_is_validated(session):
    with pytest.raises(ValidationError):
        session.add_income('2025-01-10', 'Job', 100, is_recurring=True, recurring_day_of_month=40)
    with pytest.raises(ValidationError):
        session.add_income('2025-01-10', 'Job', 100, is_recurring=True, recurring_day_of_month=0)
    assert session.store.list_income() == []
    assert session.snapshot.periods == []


def test_unknown_income_source_type_is_rejected(session):
    with pytest.raises(ValidationError):
        session.add_income('2025-01-10', 'Job', 100, source_type='lottery')
    income = session.add_income('2025-01-10', 'Shop', 100, source_type='business')
    with pytest.raises(ValidationError):
        session.update_income(replace(income, source_type='gift'))
    assert session.store.list_income()[0].source_type == 'business'


def test_recurring_preset_starts_a_template(session):
    preset = session.save_recurring_preset(
        'Internet', 45.0, 'Category 4', 15, payment_method='Payment Method 2'
    )
    assert preset.name == 'Internet'
    assert [p.id for p in session.store.list_recurring_presets()] == [preset.id]

    session.set_salary('2025-04', 1000)
    template = session.add_recurring_expense_from_preset(preset.id, start_period='2025-04')
    assert (template.description, template.amount, template.day_of_month) == ('Internet', 45.0, 15)
    assert template.payment_method == 'Payment Method 2'
    session.reconcile()
    [generated] = session.store.list_expenses('2025-04')
    assert (generated.date, generated.recurring_template_id) == ('2025-04-15', template.id)

    session.delete_recurring_preset(preset.id)
    assert session.store.list_recurring_presets() == []
    assert [t.id for t in session.store.list_recurring_expenses()] == [template.id]
    with pytest.raises(NotFoundError):
        session.add_recurring_expense_from_preset(preset.id)


def test_invalid_preset_is_rejected(session):
    with pytest.raises(ValidationError):
        session.save_recurring_preset('Internet', 45.0, 'Category 4', 0)
    with pytest.raises(ValidationError):
        session.save_recurring_preset('', 45.0, 'Category 4', 3)
    assert session.store.list_recurring_presets() == []
    assert session.snapshot.recurring_presets == []


def test_deleting_category_moves_presets_to_other(session):
    session.save_recurring_preset('Internet', 45.0, 'Category 4', 15, payment_method='Payment Method 2')
    session.delete_category('Category 4')
    session.delete_payment_method('Payment Method 2')
    [stored] = session.store.list_recurring_presets()
    assert (stored.category, stored.payment_method) == (OTHER_CATEGORY, None)
    [local] = session.snapshot.recurring_presets
    assert (local.category, local.payment_method) == (OTHER_CATEGORY, None)
