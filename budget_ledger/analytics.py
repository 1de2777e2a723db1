"""Read-only aggregates over a ledger snapshot.

This module contains the monthly and yearly calculations behind the
dashboard, monthly, budgets and savings views: totals, budget versus
actual, alerts, duplicate detection, largest expenses and the weekday
heatmap.  Nothing here mutates the snapshot it is given.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .config import ALERT_THRESHOLD
from .models import ExpenseEntry, SavingsGoal, Snapshot

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

EXPENSE_COLUMNS = ['id', 'Period', 'Date', 'Category', 'Amount', 'Notes', 'Payment Method', 'Order']
INCOME_COLUMNS = ['id', 'Period', 'Date', 'Description', 'Source Type', 'Amount']

ON_TRACK = 'On Track'
WARNING = 'Warning'
OVER_BUDGET = 'Over Budget'


class LedgerAnalytics:
    """Monthly and yearly calculations for one account snapshot."""

    def __init__(self, snapshot: Snapshot):
        """Initialize with the account snapshot."""
        self.snapshot = snapshot
        self._expenses_by_id: Dict[str, ExpenseEntry] = {}
        self.expenses = self._build_expense_frame()
        self.income = self._build_income_frame()
        self.salaries = pd.Series(
            {p.period_key: float(p.legacy_salary or 0) for p in snapshot.periods}, dtype=float
        )

    def _build_expense_frame(self) -> pd.DataFrame:
        rows = []
        for order, expense in enumerate(self.snapshot.iter_expenses()):
            self._expenses_by_id[expense.id] = expense
            rows.append({
                'id': expense.id,
                'Period': expense.period_key,
                'Date': expense.date,
                'Category': expense.category,
                'Amount': expense.amount,
                'Notes': expense.notes,
                'Payment Method': expense.payment_method,
                'Order': order,
            })
        df = pd.DataFrame(rows, columns=EXPENSE_COLUMNS)
        df['Amount'] = pd.to_numeric(df['Amount'], errors='coerce').fillna(0.0).astype(float)
        df['Timestamp'] = pd.to_datetime(df['Date'], errors='coerce')
        return df

    def _build_income_frame(self) -> pd.DataFrame:
        rows = [
            {
                'id': income.id,
                'Period': income.period_key,
                'Date': income.date,
                'Description': income.description,
                'Source Type': income.source_type,
                'Amount': income.amount,
            }
            for income in self.snapshot.iter_income()
        ]
        df = pd.DataFrame(rows, columns=INCOME_COLUMNS)
        df['Amount'] = pd.to_numeric(df['Amount'], errors='coerce').fillna(0.0).astype(float)
        return df

    def _period_expenses(self, period_key: str) -> pd.DataFrame:
        return self.expenses[self.expenses['Period'] == period_key]

    def _periods_between(self, start: Optional[str] = None, end: Optional[str] = None) -> List[str]:
        keys = sorted(
            set(self.snapshot.period_keys)
            | set(self.expenses['Period'].unique())
            | set(self.income['Period'].unique())
        )
        return [k for k in keys if (start is None or k >= start) and (end is None or k <= end)]

    # ------------------------------------------------------------------
    # per-period totals
    # ------------------------------------------------------------------
    def total_income(self, period_key: str) -> float:
        """Sum of income entries; the legacy salary only when the period has none."""
        rows = self.income[self.income['Period'] == period_key]
        if not rows.empty:
            return float(rows['Amount'].sum())
        return float(self.salaries.get(period_key, 0.0))

    def total_expenses(self, period_key: str) -> float:
        return float(self._period_expenses(period_key)['Amount'].sum())

    def balance(self, period_key: str) -> float:
        return self.total_income(period_key) - self.total_expenses(period_key)

    def category_totals(self, period_key: str) -> Dict[str, float]:
        grouped = self._period_expenses(period_key).groupby('Category')['Amount'].sum()
        return {str(k): float(v) for k, v in grouped.items()}

    def monthly_summary(self, period_key: str) -> Dict[str, Any]:
        """Header figures for the monthly view."""
        expenses = self._period_expenses(period_key)
        total_expenses = float(expenses['Amount'].sum())
        total_income = self.total_income(period_key)
        return {
            'period': period_key,
            'income': total_income,
            'expenses': total_expenses,
            'balance': total_income - total_expenses,
            'highest_expense': float(max(0.0, expenses['Amount'].max())) if not expenses.empty else 0.0,
            'average_expense': total_expenses / len(expenses) if len(expenses) else 0.0,
            'category_totals': self.category_totals(period_key),
            'transaction_count': int(len(expenses)),
        }

    # ------------------------------------------------------------------
    # budgets
    # ------------------------------------------------------------------
    def budget_status(
        self, period_key: str, budgets: Optional[Dict[str, float]] = None
    ) -> Dict[str, Dict[str, Any]]:
        """Budget versus actual for every category with a nonzero budget.

        Args:
            period_key: Month to evaluate
            budgets: Category budgets for the month; defaults to the snapshot's

        Returns:
            Mapping category -> ``{spent, budget, remaining, percentage, status}``
        """
        if budgets is None:
            budgets = self.snapshot.budgets.get(period_key, {})
        totals = self.category_totals(period_key)
        categories = sorted(set(budgets) | set(totals))
        frame = pd.DataFrame({
            'Category': categories,
            'Budget': [float(budgets.get(c, 0) or 0) for c in categories],
            'Spent': [totals.get(c, 0.0) for c in categories],
        })
        frame = frame[frame['Budget'] != 0].copy()
        if frame.empty:
            return {}
        frame['Percentage'] = frame['Spent'] / frame['Budget'] * 100
        frame['Status'] = np.select(
            [frame['Percentage'] > 100, frame['Percentage'] >= 90],
            [OVER_BUDGET, WARNING],
            default=ON_TRACK,
        )
        return {
            row.Category: {
                'spent': float(row.Spent),
                'budget': float(row.Budget),
                'remaining': float(row.Budget - row.Spent),
                'percentage': float(row.Percentage),
                'status': str(row.Status),
            }
            for row in frame.itertuples(index=False)
        }

    def budget_alerts(
        self,
        period_key: str,
        budgets: Optional[Dict[str, float]] = None,
        threshold: float = ALERT_THRESHOLD,
    ) -> List[Dict[str, Any]]:
        """Categories at or above ``threshold`` percent of budget, worst first."""
        alerts = [
            {'category': category, **status}
            for category, status in self.budget_status(period_key, budgets).items()
            if status['percentage'] >= threshold
        ]
        alerts.sort(key=lambda a: (-a['percentage'], a['category']))
        return alerts

    # ------------------------------------------------------------------
    # expense lists
    # ------------------------------------------------------------------
    def duplicate_candidates(self, period_key: str) -> List[List[ExpenseEntry]]:
        """Clusters of expenses sharing amount, category and date.

        Notes are not part of the key, so two distinct purchases with the
        same amount on the same day in the same category are reported too.
        """
        expenses = self._period_expenses(period_key)
        if expenses.empty:
            return []
        clusters = []
        for _, group in expenses.groupby(['Amount', 'Category', 'Date'], sort=False):
            if len(group) > 1:
                ordered = group.sort_values('Order')
                clusters.append([self._expenses_by_id[i] for i in ordered['id']])
        clusters.sort(key=lambda members: (members[0].date, members[0].category, members[0].amount))
        return clusters

    def top_expenses(self, n: int = 5) -> List[ExpenseEntry]:
        """The ``n`` largest expenses across all periods; ties keep insertion order."""
        if self.expenses.empty or n <= 0:
            return []
        ordered = self.expenses.sort_values('Amount', ascending=False, kind='mergesort').head(n)
        return [self._expenses_by_id[i] for i in ordered['id']]

    def day_of_week_totals(self) -> Dict[str, float]:
        """Expense totals per weekday, Monday first, for the heatmap."""
        dated = self.expenses.dropna(subset=['Timestamp'])
        weekday_spending = (
            dated.groupby(dated['Timestamp'].dt.day_name())['Amount'].sum()
            .reindex(WEEKDAYS)
            .fillna(0.0)
        )
        return {day: float(total) for day, total in weekday_spending.items()}

    # ------------------------------------------------------------------
    # ranges and years
    # ------------------------------------------------------------------
    def monthly_breakdown(self, start: Optional[str] = None, end: Optional[str] = None) -> pd.DataFrame:
        """Income, expenses and balance per period, oldest first."""
        rows = []
        for key in self._periods_between(start, end):
            year, month = key.split('-')
            income = self.total_income(key)
            expenses = self.total_expenses(key)
            rows.append({
                'Period': key,
                'Label': f"{MONTH_NAMES[int(month) - 1]} '{year[2:]}",
                'Income': income,
                'Expenses': expenses,
                'Balance': income - expenses,
            })
        return pd.DataFrame(rows, columns=['Period', 'Label', 'Income', 'Expenses', 'Balance'])

    def yearly_totals(self, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, float]:
        breakdown = self.monthly_breakdown(start, end)
        total_income = float(breakdown['Income'].sum())
        total_expenses = float(breakdown['Expenses'].sum())
        return {
            'total_income': total_income,
            'total_expenses': total_expenses,
            'net_balance': total_income - total_expenses,
        }

    def available_years(self) -> List[str]:
        return sorted({key[:4] for key in self._periods_between()})

    def year_over_year(self, year: int) -> pd.DataFrame:
        """Month-by-month income and expenses for ``year`` next to the year before."""
        previous = year - 1
        rows = []
        for index, name in enumerate(MONTH_NAMES, start=1):
            current_key = f"{year:04d}-{index:02d}"
            previous_key = f"{previous:04d}-{index:02d}"
            rows.append({
                'Month': name,
                f'{year} Income': self.total_income(current_key),
                f'{previous} Income': self.total_income(previous_key),
                f'{year} Expenses': self.total_expenses(current_key),
                f'{previous} Expenses': self.total_expenses(previous_key),
            })
        return pd.DataFrame(rows)

    def category_spending(self, start: Optional[str] = None, end: Optional[str] = None) -> pd.Series:
        """Expense totals per category over a period range, largest first."""
        expenses = self.expenses
        if start:
            expenses = expenses[expenses['Period'] >= start]
        if end:
            expenses = expenses[expenses['Period'] <= end]
        if expenses.empty:
            return pd.Series(dtype=float, name='Amount')
        totals = expenses.groupby('Category')['Amount'].sum()
        return totals.sort_values(ascending=False, kind='mergesort')

    # ------------------------------------------------------------------
    # savings goals
    # ------------------------------------------------------------------
    def savings_goal_progress(
        self, goals: Optional[List[SavingsGoal]] = None, today: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Progress towards each savings goal as of ``today``."""
        goals = self.snapshot.savings_goals if goals is None else goals
        today = today or date.today()
        progress_rows = []
        for goal in goals:
            target = float(goal.target_amount or 0)
            current = float(goal.current_amount or 0)
            progress = (current / target * 100) if target > 0 else 0.0
            target_date = pd.to_datetime(goal.target_date, errors='coerce')
            if pd.isna(target_date):
                days_remaining = 0
            else:
                days_remaining = (target_date.date() - today).days
            daily_needed = (target - current) / days_remaining if days_remaining > 0 else 0.0
            on_track = daily_needed <= 0 or (target > 0 and current / target >= days_remaining / 365)
            progress_rows.append({
                'id': goal.id,
                'name': goal.name,
                'current_amount': current,
                'target_amount': target,
                'remaining_amount': max(target - current, 0.0),
                'progress_percentage': min(progress, 100.0),
                'days_remaining': days_remaining,
                'daily_needed': daily_needed,
                'is_on_track': bool(on_track),
                'status': 'Completed' if progress >= 100 else 'In Progress',
            })
        return progress_rows
