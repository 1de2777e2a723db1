"""Turn free-text quick notes into expense suggestions."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from .defaults import OTHER_CATEGORY
from .models import ExpenseEntry, QuickNote
from .periods import period_of_date

AMOUNT_RE = re.compile(r"\$?(\d+\.?\d*)")


def extract_amount(text: str) -> Optional[float]:
    """Return the first number in ``text``, with or without a leading ``$``.

    Example:
        >>> extract_amount("coffee $4.50 with Sam")
        4.5
    """
    match = AMOUNT_RE.search(text or "")
    if not match:
        return None
    return float(match.group(1))


def suggest_expense(
    note: QuickNote, today: Optional[date] = None, category: str = OTHER_CATEGORY
) -> Optional[ExpenseEntry]:
    """Propose an unsaved expense for ``note``, or ``None`` if it has no amount."""
    amount = extract_amount(note.text)
    if amount is None or amount <= 0:
        return None
    today = today or date.today()
    return ExpenseEntry(
        id="",
        period_key=period_of_date(today),
        date=today.isoformat(),
        category=category,
        amount=amount,
        notes=note.text,
    )
