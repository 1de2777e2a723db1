"""Calendar helpers for ``YYYY-MM`` period keys.

Period keys are fixed-width and zero padded, so plain string comparison
orders them chronologically.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import List, Optional, Tuple, Union

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def is_period_key(value: object) -> bool:
    return isinstance(value, str) and bool(PERIOD_RE.match(value))


def parse_period_key(period_key: str) -> Tuple[int, int]:
    """Split ``'2025-02'`` into ``(2025, 2)``.

    Raises:
        ValueError: If the key is not a zero-padded ``YYYY-MM`` string.
    """
    match = PERIOD_RE.match(period_key or "")
    if not match:
        raise ValueError(f"Invalid period key: {period_key!r} (expected YYYY-MM)")
    return int(match.group(1)), int(match.group(2))


def format_period_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def days_in_month(year: int, month: int) -> int:
    """Number of days in a Gregorian month, February included."""
    return calendar.monthrange(year, month)[1]


def clamp_day_of_month(day: int, year: int, month: int) -> int:
    """Clamp ``day`` to the last valid day of the month.

    Example:
        >>> clamp_day_of_month(31, 2025, 2)
        28
    """
    return min(day, days_in_month(year, month))


def format_date(period_key: str, day: int) -> str:
    """Build ``YYYY-MM-DD`` from a period key and a day number."""
    parse_period_key(period_key)
    return f"{period_key}-{day:02d}"


def compare_period_keys(a: str, b: str) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def add_months(period_key: str, months: int) -> str:
    """Shift a period key by ``months`` (negative values go backwards)."""
    year, month = parse_period_key(period_key)
    index = year * 12 + (month - 1) + months
    return format_period_key(index // 12, index % 12 + 1)


def period_range(start: str, end: str) -> List[str]:
    """Inclusive list of period keys from ``start`` to ``end``."""
    if start > end:
        return []
    keys = [start]
    while keys[-1] < end:
        keys.append(add_months(keys[-1], 1))
    return keys


def period_of_date(value: Union[str, date, datetime]) -> str:
    """Return the period key a ``YYYY-MM-DD`` date (or date object) falls in."""
    if isinstance(value, (date, datetime)):
        return format_period_key(value.year, value.month)
    return str(value)[:7]


def current_period_key(today: Optional[date] = None) -> str:
    today = today or date.today()
    return format_period_key(today.year, today.month)
