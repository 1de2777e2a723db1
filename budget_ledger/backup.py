"""Full-account backup, restore, wipe and CSV export.

The backup is a single JSON document whose top-level keys are
``data``, ``categories``, ``categoryColors``, ``budgets``,
``recurringExpenses``, ``recurringTemplates``, ``paymentMethods``,
``paymentMethodColors``, ``savingsGoals``, ``exportDate`` and ``version``.

Restoring wipes the account first and then replays the backup through
the store, so every entry gets a new id.  There is no transaction around
the replay: if a step fails after the wipe, :class:`PartialFailure` is
raised and the account keeps whatever the finished steps wrote.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import BACKUPS_DIR, EXPORTS_DIR
from .db import LedgerStore, new_id
from .defaults import (
    FALLBACK_COLOR,
    INITIAL_CATEGORIES,
    INITIAL_CATEGORY_COLORS,
    INITIAL_PAYMENT_METHOD_COLORS,
    INITIAL_PAYMENT_METHODS,
    OTHER_CATEGORY,
)
from .errors import DuplicateRecurringEntry, InvalidFormat, PartialFailure
from .models import (
    ExpenseEntry,
    IncomeEntry,
    RecurringExpenseTemplate,
    RecurringPreset,
    SavingsGoal,
    Snapshot,
)

logger = logging.getLogger(__name__)

BACKUP_VERSION = '1.0'
CSV_HEADERS = ['Date', 'Month', 'Category', 'Payment Method', 'Amount', 'Notes']

# (field, expected type, description) checked before anything is modified
REQUIRED_FIELDS: Tuple[Tuple[str, type, str], ...] = (
    ('data', list, 'array'),
    ('categories', list, 'array'),
    ('categoryColors', dict, 'object'),
    ('budgets', dict, 'object'),
)


# ----------------------------------------------------------------------
# serialization
# ----------------------------------------------------------------------
def _expense_to_dict(expense: ExpenseEntry) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        'id': expense.id,
        'date': expense.date,
        'category': expense.category,
        'amount': expense.amount,
        'notes': expense.notes,
    }
    if expense.subcategory:
        item['subcategory'] = expense.subcategory
    if expense.payment_method:
        item['paymentMethod'] = expense.payment_method
    if expense.recurring_template_id:
        item['recurringId'] = expense.recurring_template_id
    return item


def _income_to_dict(income: IncomeEntry) -> Dict[str, Any]:
    return {
        'id': income.id,
        'description': income.description,
        'amount': income.amount,
        'date': income.date,
        'sourceType': income.source_type,
        'notes': income.notes,
        'isRecurring': income.is_recurring,
        'recurringDayOfMonth': income.recurring_day_of_month,
        'recurringStartDate': income.recurring_start_period,
        'recurringId': income.recurring_template_id,
    }


def _goal_to_dict(goal: SavingsGoal) -> Dict[str, Any]:
    return {
        'id': goal.id,
        'name': goal.name,
        'targetAmount': goal.target_amount,
        'currentAmount': goal.current_amount,
        'targetDate': goal.target_date,
        'category': goal.category,
        'contributions': [
            {
                'id': c.id,
                'goalId': goal.id,
                'amount': c.amount,
                'date': c.date,
                'notes': c.notes,
            }
            for c in goal.contributions
        ],
    }


def build_backup(snapshot: Snapshot, export_date: Optional[str] = None) -> Dict[str, Any]:
    """Build the backup document for ``snapshot`` as a plain dictionary."""
    return {
        'data': [
            {
                'month': period.period_key,
                'salary': period.legacy_salary,
                'expenses': [_expense_to_dict(e) for e in period.expenses],
                'incomeSources': [_income_to_dict(i) for i in period.income],
            }
            for period in snapshot.periods
        ],
        'categories': snapshot.category_names,
        'categoryColors': snapshot.category_colors,
        'budgets': {month: dict(values) for month, values in snapshot.budgets.items()},
        'recurringExpenses': [
            {
                'id': t.id,
                'description': t.description,
                'amount': t.amount,
                'category': t.category,
                'dayOfMonth': t.day_of_month,
                'startDate': t.start_period,
                'paymentMethod': t.payment_method,
            }
            for t in snapshot.recurring_expenses
        ],
        'recurringTemplates': [
            {
                'id': p.id,
                'name': p.name,
                'description': p.description,
                'amount': p.amount,
                'category': p.category,
                'dayOfMonth': p.day_of_month,
                'paymentMethod': p.payment_method,
            }
            for p in snapshot.recurring_presets
        ],
        'paymentMethods': snapshot.payment_method_names,
        'paymentMethodColors': snapshot.payment_method_colors,
        'savingsGoals': [_goal_to_dict(g) for g in snapshot.savings_goals],
        'exportDate': export_date or datetime.now().isoformat(),
        'version': BACKUP_VERSION,
    }


def generate_backup(snapshot: Snapshot, export_date: Optional[str] = None) -> str:
    """Serialize ``snapshot`` to the JSON backup format."""
    return json.dumps(build_backup(snapshot, export_date), indent=2)


def validate_backup(payload: Any) -> Dict[str, Any]:
    """Check the structure of a parsed backup.

    Raises:
        InvalidFormat: Naming the first missing or mistyped top-level field.
    """
    if not isinstance(payload, dict):
        raise InvalidFormat('Backup must be a JSON object')
    for field_name, expected, description in REQUIRED_FIELDS:
        if field_name not in payload:
            raise InvalidFormat(f"Backup is missing required field '{field_name}'", field_name)
        if not isinstance(payload[field_name], expected):
            raise InvalidFormat(f"Backup field '{field_name}' must be an {description}", field_name)
    for index, item in enumerate(payload['data']):
        if not isinstance(item, dict) or not isinstance(item.get('month'), str):
            raise InvalidFormat(f"Backup data entry {index} has no month", 'data')
    return payload


def parse_backup(blob: str) -> Dict[str, Any]:
    try:
        payload = json.loads(blob)
    except (TypeError, ValueError) as exc:
        raise InvalidFormat(f'Invalid JSON format: {exc}') from exc
    return validate_backup(payload)


# ----------------------------------------------------------------------
# restore
# ----------------------------------------------------------------------
def _unique(names: Sequence[str]) -> List[str]:
    seen = set()
    ordered = []
    for name in names:
        if isinstance(name, str) and name and name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def _restore_categories(store: LedgerStore, payload: Dict[str, Any]) -> None:
    colors = payload['categoryColors']
    names = _unique(payload['categories'])
    if OTHER_CATEGORY not in names:
        names.append(OTHER_CATEGORY)
    for name in names:
        store.create_category(name, colors.get(name) or INITIAL_CATEGORY_COLORS.get(name, FALLBACK_COLOR))


def _restore_payment_methods(store: LedgerStore, payload: Dict[str, Any]) -> None:
    methods = payload.get('paymentMethods') or INITIAL_PAYMENT_METHODS
    colors = payload.get('paymentMethodColors') or INITIAL_PAYMENT_METHOD_COLORS
    for name in _unique(methods):
        store.create_payment_method(name, colors.get(name, FALLBACK_COLOR))


def _restore_recurring(store: LedgerStore, payload: Dict[str, Any], id_map: Dict[str, str]) -> None:
    for item in payload.get('recurringExpenses') or []:
        created = store.create_recurring_expense(RecurringExpenseTemplate(
            id='',
            description=item.get('description') or item.get('name') or '',
            amount=float(item.get('amount') or 0),
            category=item.get('category') or OTHER_CATEGORY,
            day_of_month=int(item.get('dayOfMonth') or 1),
            start_period=item.get('startDate'),
            payment_method=item.get('paymentMethod'),
        ))
        if item.get('id'):
            id_map[item['id']] = created.id


def _restore_presets(store: LedgerStore, payload: Dict[str, Any]) -> None:
    # Listed newest first; replay oldest first so the order survives
    for item in reversed(payload.get('recurringTemplates') or []):
        description = item.get('description') or item.get('name') or ''
        store.create_recurring_preset(RecurringPreset(
            id='',
            name=item.get('name') or description,
            description=description,
            amount=float(item.get('amount') or 0),
            category=item.get('category') or OTHER_CATEGORY,
            day_of_month=int(item.get('dayOfMonth') or 1),
            payment_method=item.get('paymentMethod'),
        ))


def _create_skipping_duplicates(create: Callable, entry) -> None:
    try:
        create(entry)
    except DuplicateRecurringEntry as exc:
        logger.warning("Skipping duplicate entry in backup: %s", exc)


def _restore_periods(store: LedgerStore, payload: Dict[str, Any], id_map: Dict[str, str]) -> None:
    income_ids: Dict[str, str] = {}
    for item in payload['data']:
        month = item['month']
        store.upsert_period_salary(month, float(item.get('salary') or 0))
        for expense in item.get('expenses') or []:
            recurring_id = expense.get('recurringId')
            _create_skipping_duplicates(store.create_expense, ExpenseEntry(
                id='',
                period_key=month,
                date=expense.get('date') or f'{month}-01',
                category=expense.get('category') or OTHER_CATEGORY,
                amount=float(expense.get('amount') or 0),
                notes=expense.get('notes') or '',
                subcategory=expense.get('subcategory'),
                payment_method=expense.get('paymentMethod'),
                recurring_template_id=id_map.get(recurring_id, recurring_id) if recurring_id else None,
            ))
        for income in item.get('incomeSources') or []:
            recurring_id = income.get('recurringId')
            if recurring_id:
                recurring_id = income_ids.setdefault(recurring_id, new_id())
            _create_skipping_duplicates(store.create_income, IncomeEntry(
                id='',
                period_key=month,
                date=income.get('date') or f'{month}-01',
                description=income.get('description') or '',
                amount=float(income.get('amount') or 0),
                source_type=income.get('sourceType') or 'other',
                notes=income.get('notes') or '',
                is_recurring=bool(income.get('isRecurring')),
                recurring_day_of_month=income.get('recurringDayOfMonth'),
                recurring_start_period=income.get('recurringStartDate'),
                recurring_template_id=recurring_id,
            ))


def _restore_budgets(store: LedgerStore, payload: Dict[str, Any]) -> None:
    for month, categories in payload['budgets'].items():
        if not isinstance(categories, dict):
            continue
        for category, amount in categories.items():
            store.set_budget(month, category, float(amount or 0))


def _restore_goals(store: LedgerStore, payload: Dict[str, Any]) -> None:
    for item in payload.get('savingsGoals') or []:
        contributions = item.get('contributions') or []
        contributed = sum(float(c.get('amount') or 0) for c in contributions)
        # Contributions are replayed below and re-add themselves to the total
        seed = max(float(item.get('currentAmount') or 0) - contributed, 0.0)
        goal = store.create_goal(SavingsGoal(
            id='',
            name=item.get('name') or '',
            target_amount=float(item.get('targetAmount') or 0),
            current_amount=seed,
            target_date=item.get('targetDate') or '',
            category=item.get('category'),
        ))
        for contribution in contributions:
            store.add_contribution(
                goal.id,
                float(contribution.get('amount') or 0),
                contribution.get('date') or '',
                contribution.get('notes'),
            )


def _run_steps(steps: Sequence[Tuple[str, Callable[[], None]]]) -> None:
    for step, action in steps:
        try:
            action()
        except Exception as exc:
            logger.exception("Step '%s' failed after the account was wiped", step)
            raise PartialFailure(step, str(exc)) from exc


def restore(blob: str, store: LedgerStore) -> Snapshot:
    """Replace the account behind ``store`` with the contents of ``blob``.

    Raises:
        InvalidFormat: The blob is not a valid backup; nothing was changed.
        PartialFailure: A replay step failed after the wipe.
    """
    payload = parse_backup(blob)
    store.clear_user_data()

    template_ids: Dict[str, str] = {}
    _run_steps([
        ('categories', lambda: _restore_categories(store, payload)),
        ('payment methods', lambda: _restore_payment_methods(store, payload)),
        ('recurring expenses', lambda: _restore_recurring(store, payload, template_ids)),
        ('recurring templates', lambda: _restore_presets(store, payload)),
        ('periods', lambda: _restore_periods(store, payload, template_ids)),
        ('budgets', lambda: _restore_budgets(store, payload)),
        ('savings goals', lambda: _restore_goals(store, payload)),
    ])
    logger.info("Restored backup from %s", payload.get('exportDate', 'unknown date'))
    return store.load_snapshot()


def seed_defaults(store: LedgerStore) -> None:
    """Create the default categories and payment methods."""
    for name in INITIAL_CATEGORIES:
        store.create_category(name, INITIAL_CATEGORY_COLORS.get(name, FALLBACK_COLOR))
    for name in INITIAL_PAYMENT_METHODS:
        store.create_payment_method(name, INITIAL_PAYMENT_METHOD_COLORS.get(name, FALLBACK_COLOR))


def clear_all(store: LedgerStore) -> Snapshot:
    """Wipe the account and re-seed only the default categories and payment methods."""
    store.clear_user_data()
    _run_steps([('defaults', lambda: seed_defaults(store))])
    return store.load_snapshot()


# ----------------------------------------------------------------------
# files and CSV
# ----------------------------------------------------------------------
def _format_amount(amount: float) -> str:
    text = f"{float(amount):.2f}".rstrip('0').rstrip('.')
    return text or '0'


def export_csv(snapshot: Snapshot) -> str:
    """Render every expense as CSV with all fields double-quoted."""
    rows = [
        [
            expense.date,
            period.period_key,
            expense.category,
            expense.payment_method or '',
            _format_amount(expense.amount),
            expense.notes or '',
        ]
        for period in snapshot.periods
        for expense in period.expenses
    ]
    frame = pd.DataFrame(rows, columns=CSV_HEADERS)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def save_backup(snapshot: Snapshot, path: Optional[Path] = None) -> Path:
    target = path or BACKUPS_DIR / f"budget-backup-{date.today().isoformat()}.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open('w', encoding='utf-8') as handle:
        handle.write(generate_backup(snapshot))
    return target


def save_csv_export(snapshot: Snapshot, path: Optional[Path] = None) -> Path:
    target = path or EXPORTS_DIR / f"budget-export-{date.today().isoformat()}.csv"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open('w', encoding='utf-8', newline='') as handle:
        handle.write(export_csv(snapshot))
    return target


def load_backup_file(path: Path) -> str:
    with Path(path).open('r', encoding='utf-8') as handle:
        return handle.read()
