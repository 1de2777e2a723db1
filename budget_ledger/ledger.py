"""In-memory ledger session backed by a :class:`~budget_ledger.db.LedgerStore`.

The session keeps a :class:`Snapshot` of the account for fast reads.
Every mutation is applied to the snapshot first and then written to the
store; when the store call fails the local change is undone and the
error is re-raised, so the snapshot never drifts from what was saved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, List, Optional, Tuple, TypeVar

from .analytics import LedgerAnalytics
from .backup import seed_defaults
from .config import FORWARD_MONTHS
from .db import LedgerStore, new_id
from .defaults import INCOME_SOURCE_TYPES, OTHER_CATEGORY, palette_color
from .errors import NotFoundError, ProtectedCategoryError, ValidationError
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
from .periods import current_period_key, is_period_key, period_of_date
from .quick_notes import suggest_expense
from .recurring import (
    IncomeForwardTracker,
    MaterializationResult,
    derive_income_templates,
    entries_for_template,
    forward_income_entries,
    materialize_expenses,
    materialize_income,
    persist_entries,
    validate_expense_template,
    validate_income_template,
    validate_preset,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (loaded, template count, entry count, visible period keys)
Marker = Tuple[bool, int, int, Tuple[str, ...]]


@dataclass
class ReconcileSummary:
    """What one :meth:`LedgerSession.reconcile` call did."""

    expenses: MaterializationResult = field(default_factory=MaterializationResult)
    income: MaterializationResult = field(default_factory=MaterializationResult)
    coalesced: bool = False

    @property
    def created(self) -> int:
        return len(self.expenses.created) + len(self.income.created)

    @property
    def failed(self) -> int:
        return self.expenses.failed + self.income.failed


def _require_positive(amount: float, what: str) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{what} amount must be a number") from exc
    if value <= 0:
        raise ValidationError(f"{what} amount must be greater than zero")
    return value


def _source_type(value: Optional[str]) -> str:
    source_type = value or "other"
    if source_type not in INCOME_SOURCE_TYPES:
        raise ValidationError(
            f"Unknown income source type {source_type!r}; expected one of {', '.join(INCOME_SOURCE_TYPES)}"
        )
    return source_type


def _period_for(entry_date: str) -> str:
    period_key = period_of_date(entry_date)
    if not is_period_key(period_key):
        raise ValidationError(f"Invalid date: {entry_date!r}")
    return period_key


class LedgerSession:
    """Write-through cache of one user's ledger."""

    def __init__(self, store: LedgerStore, forward_months: int = FORWARD_MONTHS):
        self.store = store
        self.forward_months = forward_months
        self.snapshot = Snapshot()
        self.loaded = False
        self.forward_tracker = IncomeForwardTracker()
        self._reconcile_marker: Optional[Marker] = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _write(self, apply: Callable[[], None], revert: Callable[[], None], action: Callable[[], T]) -> T:
        apply()
        try:
            return action()
        except Exception:
            revert()
            raise

    def _drop_if_empty(self, period: MonthlyPeriod, existed: bool) -> None:
        if not existed and not period.expenses and not period.income:
            self.snapshot.periods.remove(period)

    def _find_expense(self, expense_id: str) -> Tuple[MonthlyPeriod, int]:
        for period in self.snapshot.periods:
            for index, expense in enumerate(period.expenses):
                if expense.id == expense_id:
                    return period, index
        raise NotFoundError('expense', expense_id)

    def _find_income(self, income_id: str) -> Tuple[MonthlyPeriod, int]:
        for period in self.snapshot.periods:
            for index, income in enumerate(period.income):
                if income.id == income_id:
                    return period, index
        raise NotFoundError('income', income_id)

    def _find_goal(self, goal_id: str) -> SavingsGoal:
        for goal in self.snapshot.savings_goals:
            if goal.id == goal_id:
                return goal
        raise NotFoundError('savings goal', goal_id)

    def _find_note(self, note_id: str) -> QuickNote:
        for note in self.snapshot.quick_notes:
            if note.id == note_id:
                return note
        raise NotFoundError('quick note', note_id)

    def _marker(self) -> Marker:
        income_templates = derive_income_templates(self.snapshot.iter_income())
        template_count = len(self.snapshot.recurring_expenses) + len(income_templates)
        entry_count = sum(len(p.expenses) + len(p.income) for p in self.snapshot.periods)
        return (self.loaded, template_count, entry_count, tuple(self.snapshot.period_keys))

    def _move_target(self, period_key: str) -> Tuple[MonthlyPeriod, bool]:
        existed = self.snapshot.period(period_key) is not None
        return self.snapshot.ensure_period(period_key), existed

    @staticmethod
    def _validate_recurring_income(entry: IncomeEntry) -> None:
        validate_income_template(RecurringIncomeTemplate(
            recurring_template_id=entry.recurring_template_id or entry.id,
            description=entry.description,
            amount=entry.amount,
            source_type=entry.source_type,
            recurring_day_of_month=entry.recurring_day_of_month,
            recurring_start_period=entry.recurring_start_period,
        ))

    # ------------------------------------------------------------------
    # loading and reconciliation
    # ------------------------------------------------------------------
    def load(self, seed: bool = True) -> Snapshot:
        """Read the account from the store, seeding defaults for a new account."""
        snapshot = self.store.load_snapshot()
        if seed and not snapshot.categories and not snapshot.payment_methods and not snapshot.periods:
            logger.info("Seeding default categories and payment methods for user %s", self.store.user_id)
            seed_defaults(self.store)
            snapshot = self.store.load_snapshot()
        self.snapshot = snapshot
        self.loaded = True
        self._reconcile_marker = None
        self.forward_tracker.reset()
        return snapshot

    def reconcile(self, force: bool = False) -> ReconcileSummary:
        """Create the entries recurring templates imply but the ledger lacks.

        Repeated calls with nothing changed since the last run are coalesced
        and report ``coalesced=True``.
        """
        if not self.loaded:
            logger.debug("Reconcile requested before load; nothing to do")
            return ReconcileSummary(coalesced=True)
        if not force and self._reconcile_marker == self._marker():
            return ReconcileSummary(coalesced=True)

        expense_result = materialize_expenses(
            self.snapshot.periods, self.snapshot.recurring_expenses, self.snapshot.iter_expenses()
        )
        persist_entries(expense_result, self.store.create_expense)
        for created in expense_result.created:
            self.snapshot.ensure_period(created.period_key).expenses.append(created)

        income_result = materialize_income(
            self.snapshot.periods,
            derive_income_templates(self.snapshot.iter_income()),
            self.snapshot.iter_income(),
        )
        persist_entries(income_result, self.store.create_income)
        for created in income_result.created:
            self.snapshot.ensure_period(created.period_key).income.append(created)

        summary = ReconcileSummary(expenses=expense_result, income=income_result)
        if summary.created or summary.failed:
            logger.info(
                "Reconciled recurring entries: %d created, %d failed, %d already present",
                summary.created,
                summary.failed,
                expense_result.duplicates + income_result.duplicates,
            )
        self._reconcile_marker = self._marker()
        return summary

    def analytics(self) -> LedgerAnalytics:
        return LedgerAnalytics(self.snapshot)

    # ------------------------------------------------------------------
    # expenses
    # ------------------------------------------------------------------
    def add_expense(
        self,
        entry_date: str,
        category: str,
        amount: float,
        notes: str = "",
        payment_method: Optional[str] = None,
        subcategory: Optional[str] = None,
    ) -> ExpenseEntry:
        period_key = _period_for(entry_date)
        if not category:
            raise ValidationError("Expense category is required")
        draft = ExpenseEntry(
            id=new_id(),
            period_key=period_key,
            date=entry_date,
            category=category,
            amount=_require_positive(amount, 'Expense'),
            notes=notes or "",
            subcategory=subcategory,
            payment_method=payment_method,
        )
        existed = self.snapshot.period(period_key) is not None
        period = self.snapshot.ensure_period(period_key)

        def revert() -> None:
            period.expenses.remove(draft)
            self._drop_if_empty(period, existed)

        stored = self._write(
            lambda: period.expenses.append(draft),
            revert,
            lambda: self.store.create_expense(draft),
        )
        draft.id = stored.id
        return draft

    def update_expense(self, entry: ExpenseEntry) -> ExpenseEntry:
        """Replace the stored expense with the same id, moving it if its month changed."""
        period, index = self._find_expense(entry.id)
        previous = period.expenses[index]
        updated = replace(entry, period_key=_period_for(entry.date))
        _require_positive(updated.amount, 'Expense')
        target, existed = self._move_target(updated.period_key)

        def apply() -> None:
            del period.expenses[index]
            if target is period:
                period.expenses.insert(index, updated)
            else:
                target.expenses.append(updated)

        def revert() -> None:
            target.expenses.remove(updated)
            period.expenses.insert(index, previous)
            self._drop_if_empty(target, existed)

        return self._write(apply, revert, lambda: self.store.update_expense(updated))

    def delete_expense(self, expense_id: str) -> None:
        period, index = self._find_expense(expense_id)
        removed = period.expenses[index]
        self._write(
            lambda: period.expenses.pop(index),
            lambda: period.expenses.insert(index, removed),
            lambda: self.store.delete_expense(expense_id),
        )

    # ------------------------------------------------------------------
    # income
    # ------------------------------------------------------------------
    def set_salary(self, period_key: str, amount: float) -> None:
        """Set the legacy single-salary figure of a month."""
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        existed = self.snapshot.period(period_key) is not None
        period = self.snapshot.ensure_period(period_key)
        previous = period.legacy_salary

        def apply() -> None:
            period.legacy_salary = float(amount or 0)

        def revert() -> None:
            period.legacy_salary = previous
            if not existed:
                self.snapshot.periods.remove(period)

        self._write(apply, revert, lambda: self.store.upsert_period_salary(period_key, amount))

    def add_income(
        self,
        entry_date: str,
        description: str,
        amount: float,
        source_type: str = "other",
        notes: str = "",
        is_recurring: bool = False,
        recurring_day_of_month: Optional[int] = None,
    ) -> IncomeEntry:
        """Record an income entry.

        A recurring entry also starts a template of its own, and the
        following ``forward_months`` periods are filled in right away.
        Failures while filling them are logged and counted but do not
        undo the entry itself.

        Raises:
            ValidationError: For a non-positive amount, an unknown source
                type, or a recurring day outside 1-31.
        """
        period_key = _period_for(entry_date)
        draft = IncomeEntry(
            id=new_id(),
            period_key=period_key,
            date=entry_date,
            description=description,
            amount=_require_positive(amount, 'Income'),
            source_type=_source_type(source_type),
            notes=notes or "",
        )
        if is_recurring:
            draft.is_recurring = True
            if recurring_day_of_month is None:
                recurring_day_of_month = int(entry_date[8:10])
            draft.recurring_day_of_month = recurring_day_of_month
            draft.recurring_start_period = period_key
            draft.recurring_template_id = new_id()
            self._validate_recurring_income(draft)

        existed = self.snapshot.period(period_key) is not None
        period = self.snapshot.ensure_period(period_key)

        def revert() -> None:
            period.income.remove(draft)
            self._drop_if_empty(period, existed)

        stored = self._write(
            lambda: period.income.append(draft),
            revert,
            lambda: self.store.create_income(draft),
        )
        draft.id = stored.id

        if draft.is_recurring and self.forward_tracker.should_generate(draft.recurring_template_id):
            self._generate_forward(draft)
        return draft

    def _generate_forward(self, source: IncomeEntry) -> MaterializationResult:
        result = forward_income_entries(source, self.snapshot.iter_income(), self.forward_months)
        persist_entries(result, self.store.create_income)
        for created in result.created:
            self.snapshot.ensure_period(created.period_key).income.append(created)
        self.forward_tracker.mark(source.recurring_template_id)
        if result.failed:
            logger.warning(
                "Forward generation for %s: %d of %d entries failed",
                source.recurring_template_id,
                result.failed,
                len(result.to_create),
            )
        return result

    def update_income(self, entry: IncomeEntry) -> IncomeEntry:
        period, index = self._find_income(entry.id)
        previous = period.income[index]
        updated = replace(entry, period_key=_period_for(entry.date))
        _require_positive(updated.amount, 'Income')
        updated.source_type = _source_type(updated.source_type)
        if updated.is_recurring:
            self._validate_recurring_income(updated)
        target, existed = self._move_target(updated.period_key)

        def apply() -> None:
            del period.income[index]
            if target is period:
                period.income.insert(index, updated)
            else:
                target.income.append(updated)

        def revert() -> None:
            target.income.remove(updated)
            period.income.insert(index, previous)
            self._drop_if_empty(target, existed)

        return self._write(apply, revert, lambda: self.store.update_income(updated))

    def delete_income(self, income_id: str) -> None:
        period, index = self._find_income(income_id)
        removed = period.income[index]
        self._write(
            lambda: period.income.pop(index),
            lambda: period.income.insert(index, removed),
            lambda: self.store.delete_income(income_id),
        )

    # ------------------------------------------------------------------
    # categories and payment methods
    # ------------------------------------------------------------------
    def add_category(self, name: str, color: Optional[str] = None) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty")
        if name in self.snapshot.category_names:
            raise ValidationError(f"Category '{name}' already exists")
        category = Category(name=name, color=color or palette_color(len(self.snapshot.categories)))
        self._write(
            lambda: self.snapshot.categories.append(category),
            lambda: self.snapshot.categories.remove(category),
            lambda: self.store.create_category(category.name, category.color),
        )
        return category

    def delete_category(self, name: str) -> int:
        """Delete a category, moving its expenses to ``Other`` and dropping its budgets.

        Returns:
            Number of expenses reassigned.

        Raises:
            ProtectedCategoryError: For the ``Other`` category itself.
        """
        if name == OTHER_CATEGORY:
            raise ProtectedCategoryError(f"The '{OTHER_CATEGORY}' category cannot be deleted")
        index = self.snapshot.category_names.index(name) if name in self.snapshot.category_names else -1
        if index < 0:
            raise NotFoundError('category', name)
        category = self.snapshot.categories[index]
        moved = [e for e in self.snapshot.iter_expenses() if e.category == name]
        moved_templates = [t for t in self.snapshot.recurring_expenses if t.category == name]
        moved_templates += [p for p in self.snapshot.recurring_presets if p.category == name]
        dropped_budgets = {
            month: values[name] for month, values in self.snapshot.budgets.items() if name in values
        }

        def apply() -> None:
            self.snapshot.categories.pop(index)
            for item in moved + moved_templates:
                item.category = OTHER_CATEGORY
            for month in dropped_budgets:
                del self.snapshot.budgets[month][name]

        def revert() -> None:
            self.snapshot.categories.insert(index, category)
            for item in moved + moved_templates:
                item.category = name
            for month, amount in dropped_budgets.items():
                self.snapshot.budgets.setdefault(month, {})[name] = amount

        def action() -> None:
            self.store.reassign_category(name, OTHER_CATEGORY)
            self.store.delete_budgets_for_category(name)
            self.store.delete_category(name)

        self._write(apply, revert, action)
        logger.info("Deleted category %s; %d expenses moved to %s", name, len(moved), OTHER_CATEGORY)
        return len(moved)

    def add_payment_method(self, name: str, color: Optional[str] = None) -> PaymentMethod:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Payment method name cannot be empty")
        if name in self.snapshot.payment_method_names:
            raise ValidationError(f"Payment method '{name}' already exists")
        method = PaymentMethod(name=name, color=color or palette_color(len(self.snapshot.payment_methods)))
        self._write(
            lambda: self.snapshot.payment_methods.append(method),
            lambda: self.snapshot.payment_methods.remove(method),
            lambda: self.store.create_payment_method(method.name, method.color),
        )
        return method

    def delete_payment_method(self, name: str) -> int:
        """Delete a payment method and clear it from every expense that used it."""
        names = self.snapshot.payment_method_names
        if name not in names:
            raise NotFoundError('payment method', name)
        index = names.index(name)
        method = self.snapshot.payment_methods[index]
        cleared = [e for e in self.snapshot.iter_expenses() if e.payment_method == name]
        cleared += [t for t in self.snapshot.recurring_expenses if t.payment_method == name]
        cleared += [p for p in self.snapshot.recurring_presets if p.payment_method == name]

        def apply() -> None:
            self.snapshot.payment_methods.pop(index)
            for item in cleared:
                item.payment_method = None

        def revert() -> None:
            self.snapshot.payment_methods.insert(index, method)
            for item in cleared:
                item.payment_method = name

        def action() -> None:
            self.store.clear_payment_method(name)
            self.store.delete_payment_method(name)

        self._write(apply, revert, action)
        return len(cleared)

    # ------------------------------------------------------------------
    # budgets and recurring expenses
    # ------------------------------------------------------------------
    def set_budget(self, period_key: str, category: str, amount: float) -> None:
        if not is_period_key(period_key):
            raise ValidationError(f"Invalid period key: {period_key!r}")
        month = self.snapshot.budgets.setdefault(period_key, {})
        had_value = category in month
        previous = month.get(category)

        def apply() -> None:
            month[category] = float(amount or 0)

        def revert() -> None:
            if had_value:
                month[category] = previous
            else:
                month.pop(category, None)

        self._write(apply, revert, lambda: self.store.set_budget(period_key, category, amount))

    def add_recurring_expense(
        self,
        description: str,
        amount: float,
        category: str,
        day_of_month: int,
        start_period: str,
        payment_method: Optional[str] = None,
    ) -> RecurringExpenseTemplate:
        """Save a recurring expense template.

        No entries are generated here; the next :meth:`reconcile` fills in
        every loaded period from ``start_period`` on.
        """
        template = RecurringExpenseTemplate(
            id=new_id(),
            description=description,
            amount=amount,
            category=category,
            day_of_month=day_of_month,
            start_period=start_period,
            payment_method=payment_method,
        )
        validate_expense_template(template)
        stored = self._write(
            lambda: self.snapshot.recurring_expenses.append(template),
            lambda: self.snapshot.recurring_expenses.remove(template),
            lambda: self.store.create_recurring_expense(template),
        )
        template.id = stored.id
        return template

    def delete_recurring_expense(self, template_id: str) -> int:
        """Delete a template together with every expense it generated."""
        templates = self.snapshot.recurring_expenses
        index = next((i for i, t in enumerate(templates) if t.id == template_id), -1)
        if index < 0:
            raise NotFoundError('recurring expense', template_id)
        template = templates[index]
        generated = [
            (period, list(period.expenses))
            for period in self.snapshot.periods
            if entries_for_template(period.expenses, template_id)
        ]

        def apply() -> None:
            templates.pop(index)
            for period, _ in generated:
                period.expenses = [e for e in period.expenses if e.recurring_template_id != template_id]

        def revert() -> None:
            templates.insert(index, template)
            for period, original in generated:
                period.expenses = original

        return self._write(apply, revert, lambda: self.store.delete_recurring_expense(template_id))

    def save_recurring_preset(
        self,
        description: str,
        amount: float,
        category: str,
        day_of_month: int,
        payment_method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> RecurringPreset:
        """Save recurring-expense settings for reuse; ``name`` defaults to the description."""
        preset = RecurringPreset(
            id=new_id(),
            name=name or description,
            description=description,
            amount=amount,
            category=category,
            day_of_month=day_of_month,
            payment_method=payment_method,
        )
        validate_preset(preset)
        stored = self._write(
            lambda: self.snapshot.recurring_presets.insert(0, preset),
            lambda: self.snapshot.recurring_presets.remove(preset),
            lambda: self.store.create_recurring_preset(preset),
        )
        preset.id = stored.id
        return preset

    def delete_recurring_preset(self, preset_id: str) -> None:
        """Delete a preset; templates already started from it are kept."""
        presets = self.snapshot.recurring_presets
        index = next((i for i, p in enumerate(presets) if p.id == preset_id), -1)
        if index < 0:
            raise NotFoundError('recurring preset', preset_id)
        preset = presets[index]
        self._write(
            lambda: presets.pop(index),
            lambda: presets.insert(index, preset),
            lambda: self.store.delete_recurring_preset(preset_id),
        )

    def add_recurring_expense_from_preset(
        self, preset_id: str, start_period: Optional[str] = None
    ) -> RecurringExpenseTemplate:
        preset = next((p for p in self.snapshot.recurring_presets if p.id == preset_id), None)
        if preset is None:
            raise NotFoundError('recurring preset', preset_id)
        return self.add_recurring_expense(
            preset.description,
            preset.amount,
            preset.category,
            preset.day_of_month,
            start_period or current_period_key(),
            payment_method=preset.payment_method,
        )

    # ------------------------------------------------------------------
    # savings goals
    # ------------------------------------------------------------------
    def add_savings_goal(
        self,
        name: str,
        target_amount: float,
        target_date: str,
        category: Optional[str] = None,
        current_amount: float = 0.0,
    ) -> SavingsGoal:
        if not name:
            raise ValidationError("Savings goal name is required")
        goal = SavingsGoal(
            id=new_id(),
            name=name,
            target_amount=_require_positive(target_amount, 'Target'),
            current_amount=float(current_amount or 0),
            target_date=target_date,
            category=category,
        )
        stored = self._write(
            lambda: self.snapshot.savings_goals.append(goal),
            lambda: self.snapshot.savings_goals.remove(goal),
            lambda: self.store.create_goal(goal),
        )
        goal.id = stored.id
        return goal

    def update_savings_goal(self, goal: SavingsGoal) -> SavingsGoal:
        current = self._find_goal(goal.id)
        index = self.snapshot.savings_goals.index(current)
        updated = replace(goal, contributions=list(current.contributions))
        self._write(
            lambda: self.snapshot.savings_goals.__setitem__(index, updated),
            lambda: self.snapshot.savings_goals.__setitem__(index, current),
            lambda: self.store.update_goal(updated),
        )
        return updated

    def delete_savings_goal(self, goal_id: str) -> None:
        goal = self._find_goal(goal_id)
        index = self.snapshot.savings_goals.index(goal)
        self._write(
            lambda: self.snapshot.savings_goals.pop(index),
            lambda: self.snapshot.savings_goals.insert(index, goal),
            lambda: self.store.delete_goal(goal_id),
        )

    def add_contribution(
        self, goal_id: str, amount: float, contribution_date: str, notes: Optional[str] = None
    ) -> SavingsContribution:
        """Add to a goal; its ``current_amount`` grows by exactly ``amount``."""
        goal = self._find_goal(goal_id)
        value = _require_positive(amount, 'Contribution')
        draft = SavingsContribution(id=new_id(), amount=value, date=contribution_date, notes=notes)

        def apply() -> None:
            goal.current_amount += value
            goal.contributions.append(draft)

        def revert() -> None:
            goal.current_amount -= value
            goal.contributions.remove(draft)

        stored = self._write(
            apply, revert, lambda: self.store.add_contribution(goal_id, value, contribution_date, notes)
        )
        draft.id = stored.id
        return draft

    # ------------------------------------------------------------------
    # quick notes
    # ------------------------------------------------------------------
    def add_quick_note(self, text: str) -> QuickNote:
        note = self.store.create_quick_note(text)
        self.snapshot.quick_notes.insert(0, note)
        return note

    def convert_quick_note(
        self, note_id: str, category: str = OTHER_CATEGORY, today: Optional[date] = None
    ) -> ExpenseEntry:
        """Create the suggested expense for a note and mark the note processed."""
        note = self._find_note(note_id)
        if note.processed:
            raise ValidationError(f"Quick note '{note_id}' was already converted")
        suggestion = suggest_expense(note, today=today, category=category)
        if suggestion is None:
            raise ValidationError(f"Quick note '{note_id}' does not contain an amount")
        expense = self.add_expense(
            suggestion.date, suggestion.category, suggestion.amount, notes=suggestion.notes
        )
        note.processed_at = self.store.mark_quick_note_processed(note_id)
        note.processed = True
        return expense

    def delete_quick_note(self, note_id: str) -> None:
        note = self._find_note(note_id)
        index = self.snapshot.quick_notes.index(note)
        self._write(
            lambda: self.snapshot.quick_notes.pop(index),
            lambda: self.snapshot.quick_notes.insert(index, note),
            lambda: self.store.delete_quick_note(note_id),
        )

    def pending_quick_notes(self) -> List[QuickNote]:
        return [n for n in self.snapshot.quick_notes if not n.processed]
