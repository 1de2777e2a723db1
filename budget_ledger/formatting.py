"""Formatting utilities for currency and percentage display."""

from __future__ import annotations

from typing import Union


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Args:
        amount: The amount to format
        include_sign: Whether to include the dollar sign

    Returns:
        Formatted currency string (e.g., "$1,234.56" or "1,234.56")

    Example:
        >>> format_currency(-1234.5)
        '-$1,234.50'
    """
    formatted = f"{abs(amount):,.2f}"
    sign = "-" if amount < 0 else ""
    return f"{sign}${formatted}" if include_sign else f"{sign}{formatted}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"
