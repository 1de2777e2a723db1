#!/usr/bin/env python3
"""Command line access to a budget ledger database.

Examples::

    python scripts/budget_cli.py report --month 2025-03
    python scripts/budget_cli.py history --from 2025-01
    python scripts/budget_cli.py reconcile
    python scripts/budget_cli.py backup --output backup.json
    python scripts/budget_cli.py restore backup.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_ledger import backup  # noqa: E402
from budget_ledger.config import DEFAULT_USER_ID, configure_logging, get_db_path  # noqa: E402
from budget_ledger.db import LedgerStore  # noqa: E402
from budget_ledger.errors import LedgerError  # noqa: E402
from budget_ledger.formatting import format_currency, format_percentage  # noqa: E402
from budget_ledger.ledger import LedgerSession  # noqa: E402
from budget_ledger.periods import current_period_key  # noqa: E402

logger = logging.getLogger("budget_cli")


def _open_session(args: argparse.Namespace) -> LedgerSession:
    store = LedgerStore(args.db, user_id=args.user)
    store.init_db()
    session = LedgerSession(store)
    session.load()
    return session


def cmd_report(args: argparse.Namespace) -> int:
    session = _open_session(args)
    session.reconcile()
    analytics = session.analytics()
    month = args.month or current_period_key()
    summary = analytics.monthly_summary(month)

    print(f"Month: {month}")
    print(f"  Income:   {format_currency(summary['income'])}")
    print(f"  Expenses: {format_currency(summary['expenses'])}")
    print(f"  Balance:  {format_currency(summary['balance'])}")

    status = analytics.budget_status(month)
    if status:
        print("\nBudgets:")
        for category, values in status.items():
            print(
                f"  {category:<20} {format_currency(values['spent']):>12} / "
                f"{format_currency(values['budget']):>12}  {format_percentage(values['percentage']):>7}  "
                f"{values['status']}"
            )

    alerts = analytics.budget_alerts(month)
    if alerts:
        print("\nAlerts:")
        for alert in alerts:
            print(f"  {alert['category']}: {format_percentage(alert['percentage'])} of budget used")

    duplicates = analytics.duplicate_candidates(month)
    if duplicates:
        print("\nPossible duplicates:")
        for cluster in duplicates:
            first = cluster[0]
            print(f"  {len(cluster)} x {first.category} {format_currency(first.amount)} on {first.date}")

    top = analytics.top_expenses(args.top)
    if top:
        print("\nLargest expenses:")
        for expense in top:
            print(f"  {expense.date}  {expense.category:<20} {format_currency(expense.amount):>12}  {expense.notes}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    store = LedgerStore(args.db, user_id=args.user)
    store.init_db()
    months = store.monthly_aggregates()
    if args.start:
        months = months[months['Month'] >= args.start]
    if args.end:
        months = months[months['Month'] <= args.end]
    if months.empty:
        print("No months recorded.")
        return 0

    print(f"{'Month':<8} {'Income':>12} {'Expenses':>12} {'Net':>12}")
    for row in months.itertuples(index=False):
        print(
            f"{row.Month:<8} {format_currency(row.Income):>12} "
            f"{format_currency(row.Expenses):>12} {format_currency(row.Net):>12}"
        )

    expenses = store.expense_frame(start_period=args.start, end_period=args.end)
    if not expenses.empty:
        by_category = expenses.groupby('Category')['Amount'].sum().sort_values(ascending=False)
        print("\nSpending by category:")
        for category, amount in by_category.items():
            print(f"  {category:<20} {format_currency(amount):>12}")
    return 0


def cmd_reconcile(args: argparse.Namespace) -> int:
    session = _open_session(args)
    summary = session.reconcile(force=True)
    print(f"Created {summary.created} recurring entries ({summary.failed} failed).")
    return 1 if summary.failed else 0


def cmd_backup(args: argparse.Namespace) -> int:
    session = _open_session(args)
    path = backup.save_backup(session.snapshot, Path(args.output) if args.output else None)
    print(f"Backup written to {path}")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    store = LedgerStore(args.db, user_id=args.user)
    store.init_db()
    snapshot = backup.restore(backup.load_backup_file(Path(args.path)), store)
    expense_count = sum(len(p.expenses) for p in snapshot.periods)
    print(f"Restored {len(snapshot.periods)} months and {expense_count} expenses.")
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    session = _open_session(args)
    path = backup.save_csv_export(session.snapshot, Path(args.output) if args.output else None)
    print(f"CSV written to {path}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to clear the account without --yes.")
        return 2
    store = LedgerStore(args.db, user_id=args.user)
    store.init_db()
    backup.clear_all(store)
    print("All data cleared; default categories and payment methods restored.")
    return 0


def cmd_goals(args: argparse.Namespace) -> int:
    session = _open_session(args)
    rows = session.analytics().savings_goal_progress(today=date.today())
    if not rows:
        print("No savings goals.")
        return 0
    for row in rows:
        track = "on track" if row['is_on_track'] else "behind"
        print(
            f"{row['name']:<20} {format_currency(row['current_amount']):>12} / "
            f"{format_currency(row['target_amount']):>12}  {format_percentage(row['progress_percentage']):>7}  "
            f"{row['days_remaining']} days left, {track}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Budget ledger maintenance and reports.')
    parser.add_argument('--db', default=get_db_path(), help='Path to the SQLite database')
    parser.add_argument('--user', default=DEFAULT_USER_ID, help='User id the ledger belongs to')
    parser.add_argument('--log-level', default=None, help='Logging level (default from BUDGET_LOG_LEVEL)')
    sub = parser.add_subparsers(dest='command', required=True)

    report = sub.add_parser('report', help='Monthly totals, budgets and alerts')
    report.add_argument('--month', help='Month as YYYY-MM (default: current month)')
    report.add_argument('--top', type=int, default=5, help='How many of the largest expenses to show')
    report.set_defaults(func=cmd_report)

    history = sub.add_parser('history', help='Income, expenses and net per month')
    history.add_argument('--from', dest='start', help='First month as YYYY-MM')
    history.add_argument('--to', dest='end', help='Last month as YYYY-MM')
    history.set_defaults(func=cmd_history)

    sub.add_parser('reconcile', help='Generate missing recurring entries').set_defaults(func=cmd_reconcile)

    backup_cmd = sub.add_parser('backup', help='Write a JSON backup')
    backup_cmd.add_argument('--output', help='Backup file path')
    backup_cmd.set_defaults(func=cmd_backup)

    restore_cmd = sub.add_parser('restore', help='Replace the account with a JSON backup')
    restore_cmd.add_argument('path', help='Backup file to restore')
    restore_cmd.set_defaults(func=cmd_restore)

    export = sub.add_parser('export-csv', help='Export all expenses as CSV')
    export.add_argument('--output', help='CSV file path')
    export.set_defaults(func=cmd_export_csv)

    clear = sub.add_parser('clear', help='Delete all data and re-seed defaults')
    clear.add_argument('--yes', action='store_true', help='Confirm the wipe')
    clear.set_defaults(func=cmd_clear)

    sub.add_parser('goals', help='Savings goal progress').set_defaults(func=cmd_goals)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except LedgerError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
