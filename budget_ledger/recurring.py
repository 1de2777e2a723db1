"""Materialize recurring expense and income templates into ledger entries.

A template implies exactly one concrete entry for every period on or after
its start period.  The functions here compare what the templates imply
with what already exists and return the missing entries; they never
touch the store themselves.  :func:`persist_entries` is the write step,
used by :class:`budget_ledger.ledger.LedgerSession`.

All passes are idempotent: an entry is recognised by the pair
``(recurring_template_id, period_key)``, so running the same pass twice
produces nothing the second time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar, Union

from .config import FORWARD_MONTHS
from .errors import DuplicateRecurringEntry, ValidationError
from .models import (
    ExpenseEntry,
    IncomeEntry,
    MonthlyPeriod,
    RecurringExpenseTemplate,
    RecurringIncomeTemplate,
    RecurringPreset,
)
from .periods import add_months, clamp_day_of_month, format_date, is_period_key, parse_period_key

logger = logging.getLogger(__name__)

Entry = TypeVar("Entry", ExpenseEntry, IncomeEntry)
PeriodLike = Union[MonthlyPeriod, str]


@dataclass
class MaterializationResult:
    """Outcome of one materialization pass.

    ``to_create`` holds the entries the templates imply but the ledger lacks.
    ``skipped`` counts templates rejected by validation.  The remaining
    counters are filled by :func:`persist_entries`.
    """

    to_create: List = field(default_factory=list)
    skipped: int = 0
    created: List = field(default_factory=list)
    failed: int = 0
    duplicates: int = 0


def recurring_entry_id(template_id: str, period_key: str) -> str:
    """Deterministic id for the entry a template implies in ``period_key``."""
    return f"{template_id}-{period_key}"


def _period_key(period: PeriodLike) -> str:
    return period if isinstance(period, str) else period.period_key


def _valid_day(day: object) -> bool:
    return isinstance(day, int) and not isinstance(day, bool) and 1 <= day <= 31


def validate_expense_template(template: RecurringExpenseTemplate) -> None:
    if not template.start_period or not is_period_key(template.start_period):
        raise ValidationError(f"recurring expense '{template.id}' has no valid start period")
    if template.amount is None or template.amount <= 0:
        raise ValidationError(f"recurring expense '{template.id}' has a non-positive amount")
    if not _valid_day(template.day_of_month):
        raise ValidationError(f"recurring expense '{template.id}' day {template.day_of_month!r} is outside 1-31")


def validate_preset(preset: RecurringPreset) -> None:
    if not (preset.name or '').strip() or not (preset.description or '').strip():
        raise ValidationError("recurring preset needs a name and a description")
    if preset.amount is None or preset.amount <= 0:
        raise ValidationError(f"recurring preset '{preset.name}' has a non-positive amount")
    if not _valid_day(preset.day_of_month):
        raise ValidationError(f"recurring preset '{preset.name}' day {preset.day_of_month!r} is outside 1-31")


def validate_income_template(template: RecurringIncomeTemplate) -> None:
    template_id = template.recurring_template_id
    if not template.recurring_start_period or not is_period_key(template.recurring_start_period):
        raise ValidationError(f"recurring income '{template_id}' has no valid start period")
    if template.amount is None or template.amount <= 0:
        raise ValidationError(f"recurring income '{template_id}' has a non-positive amount")
    if not _valid_day(template.recurring_day_of_month):
        raise ValidationError(
            f"recurring income '{template_id}' day {template.recurring_day_of_month!r} is outside 1-31"
        )


def _existing_pairs(entries: Iterable[Union[ExpenseEntry, IncomeEntry]]) -> Set[Tuple[str, str]]:
    return {
        (entry.recurring_template_id, entry.period_key)
        for entry in entries
        if entry.recurring_template_id
    }


def _valid_templates(templates: Iterable, validator: Callable, result: MaterializationResult) -> List:
    valid = []
    for template in templates:
        try:
            validator(template)
        except ValidationError as exc:
            logger.warning("Skipping recurring template: %s", exc)
            result.skipped += 1
            continue
        valid.append(template)
    return valid


def _sorted_period_keys(periods: Iterable[PeriodLike]) -> List[str]:
    keys = set()
    for period in periods:
        key = _period_key(period)
        if not is_period_key(key):
            logger.warning("Ignoring malformed period key %r", key)
            continue
        keys.add(key)
    return sorted(keys)


def materialize_expenses(
    periods: Iterable[PeriodLike],
    templates: Iterable[RecurringExpenseTemplate],
    existing_expenses: Iterable[ExpenseEntry],
) -> MaterializationResult:
    """Return the expense entries recurring templates imply but the ledger lacks.

    Example:
        A template for day 31 starting ``2025-01`` over ``2025-01..2025-04``
        yields entries dated ``2025-01-31``, ``2025-02-28``, ``2025-03-31``
        and ``2025-04-30``.
    """
    result = MaterializationResult()
    existing = _existing_pairs(existing_expenses)
    valid = _valid_templates(templates, validate_expense_template, result)

    for key in _sorted_period_keys(periods):
        year, month = parse_period_key(key)
        for template in valid:
            if key < template.start_period:
                continue
            pair = (template.id, key)
            if pair in existing:
                continue
            day = clamp_day_of_month(template.day_of_month, year, month)
            result.to_create.append(ExpenseEntry(
                id=recurring_entry_id(template.id, key),
                period_key=key,
                date=format_date(key, day),
                category=template.category,
                amount=template.amount,
                notes=template.description,
                payment_method=template.payment_method,
                recurring_template_id=template.id,
            ))
            existing.add(pair)
    return result


def derive_income_templates(income_entries: Iterable[IncomeEntry]) -> List[RecurringIncomeTemplate]:
    """Collapse the income rows flagged as recurring into one template per id.

    The earliest row of each ``recurring_template_id`` defines the template.
    """
    templates: Dict[str, RecurringIncomeTemplate] = {}
    for entry in sorted(income_entries, key=lambda e: e.period_key):
        if not entry.is_recurring or not entry.recurring_template_id:
            continue
        if entry.recurring_template_id in templates:
            continue
        templates[entry.recurring_template_id] = RecurringIncomeTemplate(
            recurring_template_id=entry.recurring_template_id,
            description=entry.description,
            amount=entry.amount,
            source_type=entry.source_type,
            recurring_day_of_month=entry.recurring_day_of_month,
            recurring_start_period=entry.recurring_start_period,
            notes=entry.notes,
        )
    return list(templates.values())


def _income_entry_for(template: RecurringIncomeTemplate, key: str) -> IncomeEntry:
    year, month = parse_period_key(key)
    day = clamp_day_of_month(template.recurring_day_of_month, year, month)
    return IncomeEntry(
        id=recurring_entry_id(template.recurring_template_id, key),
        period_key=key,
        date=format_date(key, day),
        description=template.description,
        amount=template.amount,
        source_type=template.source_type,
        notes=template.notes,
        is_recurring=True,
        recurring_day_of_month=template.recurring_day_of_month,
        recurring_start_period=template.recurring_start_period,
        recurring_template_id=template.recurring_template_id,
    )


def materialize_income(
    periods: Iterable[PeriodLike],
    income_templates: Iterable[RecurringIncomeTemplate],
    existing_income: Iterable[IncomeEntry],
) -> MaterializationResult:
    """Return the income entries recurring income templates imply but the ledger lacks."""
    result = MaterializationResult()
    existing = _existing_pairs(existing_income)
    valid = _valid_templates(income_templates, validate_income_template, result)

    for key in _sorted_period_keys(periods):
        for template in valid:
            if key < template.recurring_start_period:
                continue
            pair = (template.recurring_template_id, key)
            if pair in existing:
                continue
            result.to_create.append(_income_entry_for(template, key))
            existing.add(pair)
    return result


def forward_income_entries(
    source: IncomeEntry,
    existing_income: Iterable[IncomeEntry],
    months: int = FORWARD_MONTHS,
) -> MaterializationResult:
    """Project a newly created recurring income into the following ``months`` periods.

    ``source`` is the row the user just added in its own period P; the
    result covers ``P+1 .. P+months``.  Periods before the template's start
    period and pairs that already exist are left out.
    """
    result = MaterializationResult()
    template = RecurringIncomeTemplate(
        recurring_template_id=source.recurring_template_id or "",
        description=source.description,
        amount=source.amount,
        source_type=source.source_type,
        recurring_day_of_month=source.recurring_day_of_month,
        recurring_start_period=source.recurring_start_period or source.period_key,
        notes=source.notes,
    )
    if not source.is_recurring or not source.recurring_template_id:
        return result
    if not _valid_templates([template], validate_income_template, result):
        return result

    existing = _existing_pairs(existing_income)
    for offset in range(1, months + 1):
        key = add_months(source.period_key, offset)
        if key <= source.period_key or key < template.recurring_start_period:
            continue
        if (template.recurring_template_id, key) in existing:
            continue
        result.to_create.append(_income_entry_for(template, key))
        existing.add((template.recurring_template_id, key))
    return result


class IncomeForwardTracker:
    """Remember which recurring income templates were already projected forward.

    The existence check alone keeps forward generation idempotent; the
    tracker only avoids rebuilding the same projection on every refresh.
    """

    def __init__(self) -> None:
        self._generated: Set[str] = set()

    def should_generate(self, template_id: Optional[str]) -> bool:
        return bool(template_id) and template_id not in self._generated

    def mark(self, template_id: str) -> None:
        self._generated.add(template_id)

    def forget(self, template_id: str) -> None:
        self._generated.discard(template_id)

    def reset(self) -> None:
        self._generated.clear()


def persist_entries(
    result: MaterializationResult,
    create: Callable[[Entry], Entry],
) -> MaterializationResult:
    """Write ``result.to_create`` through ``create`` one entry at a time.

    A failing create is logged and counted; it never stops the rest of the
    batch.  A create rejected because the pair already exists in the store
    (another session got there first) counts as a duplicate, not a failure.
    """
    for entry in result.to_create:
        try:
            created = create(entry)
        except DuplicateRecurringEntry as exc:
            logger.info("Recurring entry already present: %s", exc)
            result.duplicates += 1
        except Exception:
            logger.exception(
                "Failed to create recurring entry %s for %s",
                entry.recurring_template_id,
                entry.period_key,
            )
            result.failed += 1
        else:
            result.created.append(created)
    return result


def entries_for_template(entries: Sequence[Entry], template_id: str) -> List[Entry]:
    return [e for e in entries if e.recurring_template_id == template_id]
