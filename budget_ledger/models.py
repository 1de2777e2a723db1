"""Domain records shared by the store, the materializers and the aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass
class ExpenseEntry:
    id: str
    period_key: str
    date: str  # YYYY-MM-DD, inside period_key
    category: str
    amount: float
    notes: str = ""
    subcategory: Optional[str] = None
    payment_method: Optional[str] = None
    recurring_template_id: Optional[str] = None


@dataclass
class IncomeEntry:
    id: str
    period_key: str
    date: str
    description: str
    amount: float
    source_type: str = "other"
    notes: str = ""
    is_recurring: bool = False
    recurring_day_of_month: Optional[int] = None
    recurring_start_period: Optional[str] = None
    recurring_template_id: Optional[str] = None


@dataclass
class RecurringExpenseTemplate:
    id: str
    description: str
    amount: float
    category: str
    day_of_month: int
    start_period: Optional[str]
    payment_method: Optional[str] = None


@dataclass
class RecurringPreset:
    """Saved recurring-expense settings that can start new templates."""

    id: str
    name: str
    description: str
    amount: float
    category: str
    day_of_month: int
    payment_method: Optional[str] = None


@dataclass
class RecurringIncomeTemplate:
    """Recurring income rule, derived from the income rows flagged as recurring."""

    recurring_template_id: str
    description: str
    amount: float
    source_type: str
    recurring_day_of_month: Optional[int]
    recurring_start_period: Optional[str]
    notes: str = ""


@dataclass
class MonthlyPeriod:
    period_key: str
    legacy_salary: float = 0.0
    expenses: List[ExpenseEntry] = field(default_factory=list)
    income: List[IncomeEntry] = field(default_factory=list)


@dataclass
class SavingsContribution:
    id: str
    amount: float
    date: str
    notes: Optional[str] = None


@dataclass
class SavingsGoal:
    id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    target_date: str = ""
    category: Optional[str] = None
    contributions: List[SavingsContribution] = field(default_factory=list)


@dataclass
class Category:
    name: str
    color: str


@dataclass
class PaymentMethod:
    name: str
    color: str


@dataclass
class QuickNote:
    id: str
    text: str
    created_at: str
    processed: bool = False
    processed_at: Optional[str] = None


@dataclass
class Snapshot:
    """In-memory image of one account."""

    periods: List[MonthlyPeriod] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    payment_methods: List[PaymentMethod] = field(default_factory=list)
    budgets: Dict[str, Dict[str, float]] = field(default_factory=dict)
    recurring_expenses: List[RecurringExpenseTemplate] = field(default_factory=list)
    recurring_presets: List[RecurringPreset] = field(default_factory=list)
    savings_goals: List[SavingsGoal] = field(default_factory=list)
    quick_notes: List[QuickNote] = field(default_factory=list)

    def period(self, period_key: str) -> Optional[MonthlyPeriod]:
        for period in self.periods:
            if period.period_key == period_key:
                return period
        return None

    def ensure_period(self, period_key: str) -> MonthlyPeriod:
        """Return the period for ``period_key``, creating it in sorted position."""
        existing = self.period(period_key)
        if existing is not None:
            return existing
        created = MonthlyPeriod(period_key=period_key)
        self.periods.append(created)
        self.periods.sort(key=lambda p: p.period_key)
        return created

    def iter_expenses(self) -> Iterator[ExpenseEntry]:
        for period in self.periods:
            yield from period.expenses

    def iter_income(self) -> Iterator[IncomeEntry]:
        for period in self.periods:
            yield from period.income

    @property
    def period_keys(self) -> List[str]:
        return [p.period_key for p in self.periods]

    @property
    def category_names(self) -> List[str]:
        return [c.name for c in self.categories]

    @property
    def category_colors(self) -> Dict[str, str]:
        return {c.name: c.color for c in self.categories}

    @property
    def payment_method_names(self) -> List[str]:
        return [m.name for m in self.payment_methods]

    @property
    def payment_method_colors(self) -> Dict[str, str]:
        return {m.name: m.color for m in self.payment_methods}
