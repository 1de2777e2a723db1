from datetime import date, timedelta

import pandas as pd

from budget_ledger.analytics import LedgerAnalytics
from budget_ledger.models import ExpenseEntry, IncomeEntry, MonthlyPeriod, SavingsGoal, Snapshot


def _expense(eid, day, category, amount, notes='', period_key='2025-03'):
    return ExpenseEntry(
        id=eid, period_key=period_key, date=f'{period_key}-{day:02d}', category=category,
        amount=amount, notes=notes,
    )


def _build_snapshot():
    march = MonthlyPeriod(
        period_key='2025-03',
        legacy_salary=2500.0,
        expenses=[
            _expense('e1', 3, 'Food', 100.0, 'groceries'),
            _expense('e2', 3, 'Food', 50.0, 'market'),
            _expense('e3', 10, 'Transport', 40.0),
        ],
        income=[IncomeEntry('i1', '2025-03', '2025-03-01', 'Salary', 3000.0, source_type='salary')],
    )
    february = MonthlyPeriod(
        period_key='2025-02',
        legacy_salary=1800.0,
        expenses=[_expense('e0', 14, 'Food', 60.0, period_key='2025-02')],
    )
    return Snapshot(
        periods=[february, march],
        budgets={'2025-03': {'Food': 120.0, 'Transport': 100.0, 'Rent': 0.0}},
    )


def test_income_prefers_entries_over_legacy_salary():
    analytics = LedgerAnalytics(_build_snapshot())
    assert analytics.total_income('2025-03') == 3000.0
    assert analytics.total_income('2025-02') == 1800.0
    assert analytics.total_income('2030-01') == 0.0
    assert analytics.balance('2025-03') == 3000.0 - 190.0


def test_budget_over_limit_is_flagged_and_alerted():
    analytics = LedgerAnalytics(_build_snapshot())
    status = analytics.budget_status('2025-03')
    assert status['Food']['percentage'] == 125.0
    assert status['Food']['status'] == 'Over Budget'
    assert status['Food']['remaining'] == -30.0
    assert status['Transport']['status'] == 'On Track'
    assert 'Rent' not in status

    alerts = analytics.budget_alerts('2025-03')
    assert [a['category'] for a in alerts] == ['Food']


def test_warning_band_starts_at_ninety_percent():
    analytics = LedgerAnalytics(_build_snapshot())
    status = analytics.budget_status('2025-03', {'Transport': 44.0, 'Food': 200.0})
    assert status['Transport']['status'] == 'Warning'
    assert status['Food']['status'] == 'On Track'


def test_analytics_does_not_mutate_snapshot():
    snapshot = _build_snapshot()
    before = repr(snapshot)
    analytics = LedgerAnalytics(snapshot)
    analytics.budget_status('2025-03')
    analytics.duplicate_candidates('2025-03')
    analytics.monthly_breakdown()
    assert repr(snapshot) == before


def test_duplicates_ignore_notes():
    snapshot = _build_snapshot()
    snapshot.periods[1].expenses.append(_expense('e4', 3, 'Food', 100.0, 'something else'))
    analytics = LedgerAnalytics(snapshot)
    clusters = analytics.duplicate_candidates('2025-03')
    assert [[e.id for e in cluster] for cluster in clusters] == [['e1', 'e4']]


def test_top_expenses_keeps_insertion_order_for_ties():
    snapshot = _build_snapshot()
    snapshot.periods[1].expenses.append(_expense('e5', 20, 'Fun', 100.0))
    top = LedgerAnalytics(snapshot).top_expenses(3)
    assert [e.id for e in top] == ['e1', 'e5', 'e0']


def test_weekday_totals_start_on_monday():
    snapshot = Snapshot(periods=[MonthlyPeriod(
        period_key='2025-01',
        expenses=[
            _expense('a', 6, 'Food', 10.0, period_key='2025-01'),   # Monday
            _expense('b', 13, 'Food', 5.0, period_key='2025-01'),   # Monday
            _expense('c', 12, 'Food', 7.0, period_key='2025-01'),   # Sunday
        ],
    )])
    totals = LedgerAnalytics(snapshot).day_of_week_totals()
    assert list(totals) == ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
    assert totals['Monday'] == 15.0
    assert totals['Sunday'] == 7.0
    assert totals['Friday'] == 0.0


def test_monthly_breakdown_and_range_filter():
    analytics = LedgerAnalytics(_build_snapshot())
    breakdown = analytics.monthly_breakdown()
    assert list(breakdown['Period']) == ['2025-02', '2025-03']
    assert list(breakdown['Label']) == ["Feb '25", "Mar '25"]
    only_march = analytics.monthly_breakdown(start='2025-03')
    assert list(only_march['Balance']) == [2810.0]
    totals = analytics.yearly_totals()
    assert totals['total_expenses'] == 250.0
    assert analytics.available_years() == ['2025']


def test_year_over_year_and_category_spending():
    analytics = LedgerAnalytics(_build_snapshot())
    comparison = analytics.year_over_year(2025)
    march = comparison[comparison['Month'] == 'Mar'].iloc[0]
    assert march['2025 Expenses'] == 190.0
    assert march['2024 Expenses'] == 0.0
    spending = analytics.category_spending()
    assert list(spending.index) == ['Food', 'Transport']
    assert spending['Food'] == 210.0


def test_empty_snapshot_is_safe():
    analytics = LedgerAnalytics(Snapshot())
    assert analytics.top_expenses() == []
    assert analytics.duplicate_candidates('2025-01') == []
    assert analytics.budget_status('2025-01') == {}
    assert analytics.monthly_summary('2025-01')['highest_expense'] == 0.0
    assert isinstance(analytics.category_spending(), pd.Series)


def test_savings_goal_progress():
    today = date(2025, 1, 1)
    goals = [
        SavingsGoal('g1', 'Car', 1000.0, 500.0, (today + timedelta(days=100)).isoformat()),
        SavingsGoal('g2', 'Trip', 1000.0, 1200.0, '2025-06-01'),
    ]
    rows = LedgerAnalytics(Snapshot(savings_goals=goals)).savings_goal_progress(today=today)
    car, trip = rows
    assert car['days_remaining'] == 100
    assert car['daily_needed'] == 5.0
    assert car['is_on_track'] is True
    assert trip['progress_percentage'] == 100.0
    assert trip['status'] == 'Completed'
    assert trip['remaining_amount'] == 0.0
