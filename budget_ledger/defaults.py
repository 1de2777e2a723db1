"""Seed values for a fresh account.

New accounts and accounts wiped with :func:`budget_ledger.backup.clear_all`
start from these categories and payment methods.  Colours added later
are taken from :data:`PALETTE_COLORS` in rotation.
"""

from __future__ import annotations

from typing import Dict, List

OTHER_CATEGORY = "Other"
FALLBACK_COLOR = "#3b82f6"

INITIAL_CATEGORIES: List[str] = [
    "Category 1",
    "Category 2",
    "Category 3",
    "Category 4",
    "Category 5",
    OTHER_CATEGORY,
]

INITIAL_CATEGORY_COLORS: Dict[str, str] = {
    "Category 1": "#3b82f6",
    "Category 2": "#10b981",
    "Category 3": "#f59e0b",
    "Category 4": "#ef4444",
    "Category 5": "#8b5cf6",
    OTHER_CATEGORY: "#6b7280",
}

PALETTE_COLORS: List[str] = [
    "#06b6d4",
    "#22c55e",
    "#a855f7",
    "#eab308",
    "#84cc16",
    "#0891b2",
]

INITIAL_PAYMENT_METHODS: List[str] = [
    "Payment Method 1",
    "Payment Method 2",
    "Payment Method 3",
]

INITIAL_PAYMENT_METHOD_COLORS: Dict[str, str] = {
    "Payment Method 1": "#10b981",
    "Payment Method 2": "#3b82f6",
    "Payment Method 3": "#f59e0b",
}

INCOME_SOURCE_TYPES = ("salary", "business", "crypto", "loan", "investment", "other")


def palette_color(index: int) -> str:
    """Return the palette colour for the ``index``-th user-added item."""
    return PALETTE_COLORS[index % len(PALETTE_COLORS)]
