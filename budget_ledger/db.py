"""SQLite implementation of the ledger store contract.

Every :class:`LedgerStore` is bound to one user id and all reads and
writes are scoped to it.  Connections are opened per operation, in the
same way the rest of the package treats the database as a plain file.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import pandas as pd

from .config import DB_PATH, DEFAULT_USER_ID, ensure_data_directories
from .errors import DuplicateRecurringEntry, NotFoundError, ValidationError
from .models import (
    Category,
    ExpenseEntry,
    IncomeEntry,
    MonthlyPeriod,
    PaymentMethod,
    QuickNote,
    RecurringExpenseTemplate,
    RecurringIncomeTemplate,
    RecurringPreset,
    SavingsContribution,
    SavingsGoal,
    Snapshot,
)
from .periods import is_period_key, period_of_date
from .recurring import derive_income_templates

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS monthly_data (
    user_id TEXT NOT NULL,
    month TEXT NOT NULL,
    salary REAL NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, month)
);

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    month TEXT NOT NULL,
    date TEXT NOT NULL,
    category TEXT NOT NULL,
    amount REAL NOT NULL,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS income_sources (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    month TEXT NOT NULL,
    date TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    source_type TEXT NOT NULL DEFAULT 'other',
    notes TEXT,
    is_recurring INTEGER NOT NULL DEFAULT 0,
    recurring_day INTEGER,
    recurring_start TEXT,
    recurring_id TEXT
);

CREATE TABLE IF NOT EXISTS recurring_expenses (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL,
    day_of_month INTEGER NOT NULL,
    start_date TEXT,
    payment_method TEXT
);

CREATE TABLE IF NOT EXISTS recurring_presets (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL,
    day_of_month INTEGER NOT NULL,
    payment_method TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budgets (
    user_id TEXT NOT NULL,
    month TEXT NOT NULL,
    category TEXT NOT NULL,
    amount REAL NOT NULL,
    PRIMARY KEY (user_id, month, category)
);

CREATE TABLE IF NOT EXISTS user_categories (
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    PRIMARY KEY (user_id, name)
);

CREATE TABLE IF NOT EXISTS payment_methods (
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    PRIMARY KEY (user_id, name)
);

CREATE TABLE IF NOT EXISTS savings_goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    target_date TEXT,
    category TEXT
);

CREATE TABLE IF NOT EXISTS savings_contributions (
    id TEXT PRIMARY KEY,
    goal_id TEXT NOT NULL REFERENCES savings_goals(id) ON DELETE CASCADE,
    amount REAL NOT NULL,
    date TEXT NOT NULL,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS quick_notes (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    text TEXT NOT NULL,
    created_at TEXT NOT NULL,
    processed INTEGER NOT NULL DEFAULT 0,
    processed_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_expenses_user_month ON expenses (user_id, month);
CREATE INDEX IF NOT EXISTS ix_income_user_month ON income_sources (user_id, month);
CREATE UNIQUE INDEX IF NOT EXISTS ux_income_recurring
ON income_sources (user_id, recurring_id, month) WHERE recurring_id IS NOT NULL;
"""

# Columns added after the first schema version, created on older databases
EXPENSE_MIGRATIONS = [
    ('subcategory', 'TEXT'),
    ('payment_method', 'TEXT'),
    ('recurring_id', 'TEXT'),
]

# Tables cleared by a full account wipe; contributions follow their goal
USER_TABLES = (
    'expenses',
    'income_sources',
    'monthly_data',
    'user_categories',
    'budgets',
    'recurring_expenses',
    'recurring_presets',
    'payment_methods',
    'savings_goals',
    'quick_notes',
)


def new_id() -> str:
    return uuid.uuid4().hex


def _optional_int(value) -> Optional[int]:
    return None if value is None else int(value)


class LedgerStore:
    """User-scoped CRUD over the ledger tables."""

    def __init__(self, db_path: Union[str, Path, None] = None, user_id: str = DEFAULT_USER_ID):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self.user_id = user_id

    # ------------------------------------------------------------------
    # connection handling
    # ------------------------------------------------------------------
    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self.db_path == DB_PATH:
            ensure_data_directories()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
            # Run migrations to add new columns if they don't exist
            _migrate_database(conn)

    # ------------------------------------------------------------------
    # periods
    # ------------------------------------------------------------------
    def _ensure_period(self, conn: sqlite3.Connection, period_key: str) -> None:
        conn.execute(
            "INSERT OR IGNORE INTO monthly_data (user_id, month, salary) VALUES (?, ?, 0)",
            (self.user_id, period_key),
        )

    def list_periods(self) -> List[MonthlyPeriod]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT month, salary FROM monthly_data WHERE user_id = ? ORDER BY month",
                (self.user_id,),
            ).fetchall()
        return [MonthlyPeriod(period_key=r['month'], legacy_salary=float(r['salary'])) for r in rows]

    def upsert_period_salary(self, period_key: str, amount: float) -> None:
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO monthly_data (user_id, month, salary) VALUES (?, ?, ?) "
                "ON CONFLICT(user_id, month) DO UPDATE SET salary = excluded.salary",
                (self.user_id, period_key, float(amount or 0)),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # expenses
    # ------------------------------------------------------------------
    @staticmethod
    def _expense_from_row(row: sqlite3.Row) -> ExpenseEntry:
        return ExpenseEntry(
            id=row['id'],
            period_key=row['month'],
            date=row['date'],
            category=row['category'],
            amount=float(row['amount']),
            notes=row['notes'] or '',
            subcategory=row['subcategory'],
            payment_method=row['payment_method'],
            recurring_template_id=row['recurring_id'],
        )

    def list_expenses(self, period_key: Optional[str] = None) -> List[ExpenseEntry]:
        sql = "SELECT * FROM expenses WHERE user_id = ?"
        params: List[object] = [self.user_id]
        if period_key:
            sql += " AND month = ?"
            params.append(period_key)
        sql += " ORDER BY month ASC, rowid ASC"
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._expense_from_row(r) for r in rows]

    def create_expense(self, entry: ExpenseEntry) -> ExpenseEntry:
        """Insert an expense under a fresh id and return the stored copy."""
        period_key = entry.period_key or period_of_date(entry.date)
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        stored = ExpenseEntry(
            id=new_id(),
            period_key=period_key,
            date=entry.date,
            category=entry.category,
            amount=float(entry.amount),
            notes=entry.notes or '',
            subcategory=entry.subcategory,
            payment_method=entry.payment_method,
            recurring_template_id=entry.recurring_template_id,
        )
        with self.connect() as conn:
            self._ensure_period(conn, period_key)
            try:
                conn.execute(
                    "INSERT INTO expenses (id, user_id, month, date, category, subcategory, amount, "
                    "notes, payment_method, recurring_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        stored.id, self.user_id, stored.period_key, stored.date, stored.category,
                        stored.subcategory, stored.amount, stored.notes, stored.payment_method,
                        stored.recurring_template_id,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if stored.recurring_template_id:
                    raise DuplicateRecurringEntry(stored.recurring_template_id, period_key) from exc
                raise
            conn.commit()
        return stored

    def update_expense(self, entry: ExpenseEntry) -> ExpenseEntry:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE expenses SET month = ?, date = ?, category = ?, subcategory = ?, amount = ?, "
                "notes = ?, payment_method = ?, recurring_id = ? WHERE id = ? AND user_id = ?",
                (
                    entry.period_key, entry.date, entry.category, entry.subcategory, float(entry.amount),
                    entry.notes or '', entry.payment_method, entry.recurring_template_id,
                    entry.id, self.user_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError('expense', entry.id)
            self._ensure_period(conn, entry.period_key)
            conn.commit()
        return entry

    def delete_expense(self, expense_id: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM expenses WHERE id = ? AND user_id = ?", (expense_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('expense', expense_id)
            conn.commit()

    def reassign_category(self, old: str, new: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE expenses SET category = ? WHERE category = ? AND user_id = ?",
                (new, old, self.user_id),
            )
            conn.execute(
                "UPDATE recurring_expenses SET category = ? WHERE category = ? AND user_id = ?",
                (new, old, self.user_id),
            )
            conn.execute(
                "UPDATE recurring_presets SET category = ? WHERE category = ? AND user_id = ?",
                (new, old, self.user_id),
            )
            conn.commit()
            return cursor.rowcount

    def clear_payment_method(self, name: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE expenses SET payment_method = NULL WHERE payment_method = ? AND user_id = ?",
                (name, self.user_id),
            )
            conn.execute(
                "UPDATE recurring_expenses SET payment_method = NULL WHERE payment_method = ? AND user_id = ?",
                (name, self.user_id),
            )
            conn.execute(
                "UPDATE recurring_presets SET payment_method = NULL WHERE payment_method = ? AND user_id = ?",
                (name, self.user_id),
            )
            conn.commit()
            return cursor.rowcount

    def expense_frame(self, start_period: Optional[str] = None, end_period: Optional[str] = None) -> pd.DataFrame:
        """Expenses as a DataFrame with display column names, oldest first."""
        where = ["user_id = ?"]
        params: List[object] = [self.user_id]
        if start_period:
            where.append("month >= ?")
            params.append(start_period)
        if end_period:
            where.append("month <= ?")
            params.append(end_period)
        sql = (
            "SELECT id, date AS 'Date', month AS 'Month', category AS 'Category', "
            "payment_method AS 'Payment Method', amount AS 'Amount', notes AS 'Notes', "
            "recurring_id AS 'Recurring Id' FROM expenses WHERE " + " AND ".join(where)
            + " ORDER BY month ASC, rowid ASC"
        )
        with self.connect() as conn:
            df = pd.read_sql_query(sql, conn, params=params)
        if not df.empty:
            df['Date'] = pd.to_datetime(df['Date'])
        return df

    def monthly_aggregates(self) -> pd.DataFrame:
        """Per-period income, expenses and net computed in SQL."""
        sql = """
        SELECT m.month AS Month,
               COALESCE(i.total, m.salary) AS Income,
               COALESCE(e.total, 0) AS Expenses
        FROM monthly_data m
        LEFT JOIN (SELECT month, SUM(amount) AS total FROM expenses WHERE user_id = ? GROUP BY month) e
               ON e.month = m.month
        LEFT JOIN (SELECT month, SUM(amount) AS total FROM income_sources WHERE user_id = ? GROUP BY month) i
               ON i.month = m.month
        WHERE m.user_id = ?
        ORDER BY m.month
        """
        with self.connect() as conn:
            df = pd.read_sql_query(sql, conn, params=[self.user_id, self.user_id, self.user_id])
        df['Net'] = df['Income'] - df['Expenses']
        return df

    # ------------------------------------------------------------------
    # income
    # ------------------------------------------------------------------
    @staticmethod
    def _income_from_row(row: sqlite3.Row) -> IncomeEntry:
        return IncomeEntry(
            id=row['id'],
            period_key=row['month'],
            date=row['date'],
            description=row['description'],
            amount=float(row['amount']),
            source_type=row['source_type'] or 'other',
            notes=row['notes'] or '',
            is_recurring=bool(row['is_recurring']),
            recurring_day_of_month=_optional_int(row['recurring_day']),
            recurring_start_period=row['recurring_start'],
            recurring_template_id=row['recurring_id'],
        )

    def list_income(self, period_key: Optional[str] = None) -> List[IncomeEntry]:
        sql = "SELECT * FROM income_sources WHERE user_id = ?"
        params: List[object] = [self.user_id]
        if period_key:
            sql += " AND month = ?"
            params.append(period_key)
        sql += " ORDER BY month ASC, rowid ASC"
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._income_from_row(r) for r in rows]

    def create_income(self, entry: IncomeEntry) -> IncomeEntry:
        period_key = entry.period_key or period_of_date(entry.date)
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        stored = IncomeEntry(
            id=new_id(),
            period_key=period_key,
            date=entry.date,
            description=entry.description,
            amount=float(entry.amount),
            source_type=entry.source_type or 'other',
            notes=entry.notes or '',
            is_recurring=bool(entry.is_recurring),
            recurring_day_of_month=entry.recurring_day_of_month,
            recurring_start_period=entry.recurring_start_period,
            recurring_template_id=entry.recurring_template_id,
        )
        with self.connect() as conn:
            self._ensure_period(conn, period_key)
            try:
                conn.execute(
                    "INSERT INTO income_sources (id, user_id, month, date, description, amount, source_type, "
                    "notes, is_recurring, recurring_day, recurring_start, recurring_id) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        stored.id, self.user_id, stored.period_key, stored.date, stored.description,
                        stored.amount, stored.source_type, stored.notes, int(stored.is_recurring),
                        stored.recurring_day_of_month, stored.recurring_start_period,
                        stored.recurring_template_id,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if stored.recurring_template_id:
                    raise DuplicateRecurringEntry(stored.recurring_template_id, period_key) from exc
                raise
            conn.commit()
        return stored

    def update_income(self, entry: IncomeEntry) -> IncomeEntry:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE income_sources SET month = ?, date = ?, description = ?, amount = ?, source_type = ?, "
                "notes = ?, is_recurring = ?, recurring_day = ?, recurring_start = ?, recurring_id = ? "
                "WHERE id = ? AND user_id = ?",
                (
                    entry.period_key, entry.date, entry.description, float(entry.amount), entry.source_type,
                    entry.notes or '', int(entry.is_recurring), entry.recurring_day_of_month,
                    entry.recurring_start_period, entry.recurring_template_id, entry.id, self.user_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError('income', entry.id)
            self._ensure_period(conn, entry.period_key)
            conn.commit()
        return entry

    def delete_income(self, income_id: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM income_sources WHERE id = ? AND user_id = ?", (income_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('income', income_id)
            conn.commit()

    def list_recurring_income_templates(self) -> List[RecurringIncomeTemplate]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM income_sources WHERE user_id = ? AND is_recurring = 1 "
                "AND recurring_id IS NOT NULL ORDER BY month ASC, rowid ASC",
                (self.user_id,),
            ).fetchall()
        return derive_income_templates(self._income_from_row(r) for r in rows)

    # ------------------------------------------------------------------
    # recurring expense templates
    # ------------------------------------------------------------------
    def list_recurring_expenses(self) -> List[RecurringExpenseTemplate]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM recurring_expenses WHERE user_id = ? ORDER BY rowid", (self.user_id,)
            ).fetchall()
        return [
            RecurringExpenseTemplate(
                id=r['id'],
                description=r['description'],
                amount=float(r['amount']),
                category=r['category'],
                day_of_month=int(r['day_of_month']),
                start_period=r['start_date'],
                payment_method=r['payment_method'],
            )
            for r in rows
        ]

    def create_recurring_expense(self, template: RecurringExpenseTemplate) -> RecurringExpenseTemplate:
        stored = RecurringExpenseTemplate(
            id=new_id(),
            description=template.description,
            amount=float(template.amount),
            category=template.category,
            day_of_month=int(template.day_of_month),
            start_period=template.start_period,
            payment_method=template.payment_method,
        )
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO recurring_expenses (id, user_id, description, amount, category, day_of_month, "
                "start_date, payment_method) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id, self.user_id, stored.description, stored.amount, stored.category,
                    stored.day_of_month, stored.start_period, stored.payment_method,
                ),
            )
            conn.commit()
        return stored

    def delete_recurring_expense(self, template_id: str) -> int:
        """Delete a template and every expense it generated; returns the expense count."""
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM recurring_expenses WHERE id = ? AND user_id = ?", (template_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('recurring expense', template_id)
            removed = conn.execute(
                "DELETE FROM expenses WHERE recurring_id = ? AND user_id = ?", (template_id, self.user_id)
            ).rowcount
            conn.commit()
        return removed

    # ------------------------------------------------------------------
    # recurring presets
    # ------------------------------------------------------------------
    def list_recurring_presets(self) -> List[RecurringPreset]:
        """Saved presets, newest first."""
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM recurring_presets WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (self.user_id,),
            ).fetchall()
        return [
            RecurringPreset(
                id=r['id'],
                name=r['name'],
                description=r['description'],
                amount=float(r['amount']),
                category=r['category'],
                day_of_month=int(r['day_of_month']),
                payment_method=r['payment_method'],
            )
            for r in rows
        ]

    def create_recurring_preset(self, preset: RecurringPreset) -> RecurringPreset:
        stored = RecurringPreset(
            id=new_id(),
            name=preset.name,
            description=preset.description,
            amount=float(preset.amount),
            category=preset.category,
            day_of_month=int(preset.day_of_month),
            payment_method=preset.payment_method,
        )
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO recurring_presets (id, user_id, name, description, amount, category, "
                "day_of_month, payment_method, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id, self.user_id, stored.name, stored.description, stored.amount,
                    stored.category, stored.day_of_month, stored.payment_method,
                    datetime.now().isoformat(timespec="seconds"),
                ),
            )
            conn.commit()
        return stored

    def delete_recurring_preset(self, preset_id: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM recurring_presets WHERE id = ? AND user_id = ?", (preset_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('recurring preset', preset_id)
            conn.commit()

    # ------------------------------------------------------------------
    # budgets
    # ------------------------------------------------------------------
    def list_budgets(self) -> Dict[str, Dict[str, float]]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT month, category, amount FROM budgets WHERE user_id = ? ORDER BY month, rowid",
                (self.user_id,),
            ).fetchall()
        budgets: Dict[str, Dict[str, float]] = {}
        for r in rows:
            budgets.setdefault(r['month'], {})[r['category']] = float(r['amount'])
        return budgets

    def set_budget(self, period_key: str, category: str, amount: float) -> None:
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO budgets (user_id, month, category, amount) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id, month, category) DO UPDATE SET amount = excluded.amount",
                (self.user_id, period_key, category, float(amount)),
            )
            conn.commit()

    def delete_budgets_for_category(self, category: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM budgets WHERE category = ? AND user_id = ?", (category, self.user_id)
            )
            conn.commit()
            return cursor.rowcount

    # ------------------------------------------------------------------
    # categories and payment methods
    # ------------------------------------------------------------------
    def _list_named(self, table: str, factory):
        with self.connect() as conn:
            rows = conn.execute(
                f"SELECT name, color FROM {table} WHERE user_id = ? ORDER BY rowid", (self.user_id,)
            ).fetchall()
        return [factory(name=r['name'], color=r['color']) for r in rows]

    def _create_named(self, table: str, kind: str, name: str, color: str) -> None:
        if not name or not name.strip():
            raise ValidationError(f"{kind} name cannot be empty")
        with self.connect() as conn:
            try:
                conn.execute(
                    f"INSERT INTO {table} (user_id, name, color) VALUES (?, ?, ?)",
                    (self.user_id, name, color),
                )
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"{kind} '{name}' already exists") from exc
            conn.commit()

    def _delete_named(self, table: str, kind: str, name: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE name = ? AND user_id = ?", (name, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(kind, name)
            conn.commit()

    def list_categories(self) -> List[Category]:
        return self._list_named('user_categories', Category)

    def create_category(self, name: str, color: str) -> Category:
        self._create_named('user_categories', 'category', name, color)
        return Category(name=name, color=color)

    def delete_category(self, name: str) -> None:
        self._delete_named('user_categories', 'category', name)

    def list_payment_methods(self) -> List[PaymentMethod]:
        return self._list_named('payment_methods', PaymentMethod)

    def create_payment_method(self, name: str, color: str) -> PaymentMethod:
        self._create_named('payment_methods', 'payment method', name, color)
        return PaymentMethod(name=name, color=color)

    def delete_payment_method(self, name: str) -> None:
        self._delete_named('payment_methods', 'payment method', name)

    # ------------------------------------------------------------------
    # savings goals
    # ------------------------------------------------------------------
    def list_savings_goals(self) -> List[SavingsGoal]:
        with self.connect() as conn:
            goal_rows = conn.execute(
                "SELECT * FROM savings_goals WHERE user_id = ? ORDER BY rowid", (self.user_id,)
            ).fetchall()
            contribution_rows = conn.execute(
                "SELECT c.* FROM savings_contributions c JOIN savings_goals g ON g.id = c.goal_id "
                "WHERE g.user_id = ? ORDER BY c.rowid",
                (self.user_id,),
            ).fetchall()
        contributions: Dict[str, List[SavingsContribution]] = {}
        for r in contribution_rows:
            contributions.setdefault(r['goal_id'], []).append(SavingsContribution(
                id=r['id'], amount=float(r['amount']), date=r['date'], notes=r['notes'],
            ))
        return [
            SavingsGoal(
                id=r['id'],
                name=r['name'],
                target_amount=float(r['target_amount']),
                current_amount=float(r['current_amount']),
                target_date=r['target_date'] or '',
                category=r['category'],
                contributions=contributions.get(r['id'], []),
            )
            for r in goal_rows
        ]

    def create_goal(self, goal: SavingsGoal) -> SavingsGoal:
        """Insert a goal; ``current_amount`` is the initial seed, contributions are not copied."""
        stored = SavingsGoal(
            id=new_id(),
            name=goal.name,
            target_amount=float(goal.target_amount),
            current_amount=float(goal.current_amount or 0),
            target_date=goal.target_date,
            category=goal.category,
        )
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO savings_goals (id, user_id, name, target_amount, current_amount, target_date, category) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id, self.user_id, stored.name, stored.target_amount, stored.current_amount,
                    stored.target_date, stored.category,
                ),
            )
            conn.commit()
        return stored

    def update_goal(self, goal: SavingsGoal) -> SavingsGoal:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE savings_goals SET name = ?, target_amount = ?, current_amount = ?, target_date = ?, "
                "category = ? WHERE id = ? AND user_id = ?",
                (
                    goal.name, float(goal.target_amount), float(goal.current_amount), goal.target_date,
                    goal.category, goal.id, self.user_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError('savings goal', goal.id)
            conn.commit()
        return goal

    def delete_goal(self, goal_id: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM savings_goals WHERE id = ? AND user_id = ?", (goal_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('savings goal', goal_id)
            conn.commit()

    def add_contribution(
        self, goal_id: str, amount: float, date: str, notes: Optional[str] = None
    ) -> SavingsContribution:
        """Record a contribution and bump the goal's running total in one transaction."""
        contribution = SavingsContribution(id=new_id(), amount=float(amount), date=date, notes=notes)
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE savings_goals SET current_amount = current_amount + ? WHERE id = ? AND user_id = ?",
                (contribution.amount, goal_id, self.user_id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise NotFoundError('savings goal', goal_id)
            conn.execute(
                "INSERT INTO savings_contributions (id, goal_id, amount, date, notes) VALUES (?, ?, ?, ?, ?)",
                (contribution.id, goal_id, contribution.amount, contribution.date, contribution.notes),
            )
            conn.commit()
        return contribution

    # ------------------------------------------------------------------
    # quick notes
    # ------------------------------------------------------------------
    def list_quick_notes(self) -> List[QuickNote]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM quick_notes WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (self.user_id,),
            ).fetchall()
        return [
            QuickNote(
                id=r['id'],
                text=r['text'],
                created_at=r['created_at'],
                processed=bool(r['processed']),
                processed_at=r['processed_at'],
            )
            for r in rows
        ]

    def create_quick_note(self, text: str) -> QuickNote:
        if not text or not text.strip():
            raise ValidationError("Quick note text cannot be empty")
        note = QuickNote(id=new_id(), text=text.strip(), created_at=datetime.now().isoformat(timespec="seconds"))
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO quick_notes (id, user_id, text, created_at, processed) VALUES (?, ?, ?, ?, 0)",
                (note.id, self.user_id, note.text, note.created_at),
            )
            conn.commit()
        return note

    def mark_quick_note_processed(self, note_id: str) -> str:
        processed_at = datetime.now().isoformat(timespec="seconds")
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE quick_notes SET processed = 1, processed_at = ? WHERE id = ? AND user_id = ?",
                (processed_at, note_id, self.user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError('quick note', note_id)
            conn.commit()
        return processed_at

    def delete_quick_note(self, note_id: str) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM quick_notes WHERE id = ? AND user_id = ?", (note_id, self.user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError('quick note', note_id)
            conn.commit()

    # ------------------------------------------------------------------
    # whole-account operations
    # ------------------------------------------------------------------
    def clear_user_data(self) -> None:
        """Delete every row the current user owns."""
        with self.connect() as conn:
            for table in USER_TABLES:
                conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (self.user_id,))
            conn.commit()
        logger.info("Cleared all ledger data for user %s", self.user_id)

    def load_snapshot(self) -> Snapshot:
        """Read the whole account into a :class:`Snapshot`."""
        periods = {p.period_key: p for p in self.list_periods()}
        for expense in self.list_expenses():
            periods.setdefault(expense.period_key, MonthlyPeriod(period_key=expense.period_key))
            periods[expense.period_key].expenses.append(expense)
        for income in self.list_income():
            periods.setdefault(income.period_key, MonthlyPeriod(period_key=income.period_key))
            periods[income.period_key].income.append(income)
        return Snapshot(
            periods=[periods[key] for key in sorted(periods)],
            categories=self.list_categories(),
            payment_methods=self.list_payment_methods(),
            budgets=self.list_budgets(),
            recurring_expenses=self.list_recurring_expenses(),
            recurring_presets=self.list_recurring_presets(),
            savings_goals=self.list_savings_goals(),
            quick_notes=self.list_quick_notes(),
        )


def _migrate_database(conn: sqlite3.Connection) -> None:
    """Add new columns to existing database if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("PRAGMA table_info(expenses)")
    existing_columns = [row[1] for row in cursor.fetchall()]

    for column_name, column_type in EXPENSE_MIGRATIONS:
        if column_name not in existing_columns:
            try:
                cursor.execute(f"ALTER TABLE expenses ADD COLUMN {column_name} {column_type}")
                logger.info("Added column %s to expenses table", column_name)
            except sqlite3.OperationalError as e:
                if "duplicate column name" not in str(e):
                    raise

    # One generated expense per (template, period); needs recurring_id to exist first
    cursor.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_expense_recurring "
        "ON expenses (user_id, recurring_id, month) WHERE recurring_id IS NOT NULL"
    )
    conn.commit()
