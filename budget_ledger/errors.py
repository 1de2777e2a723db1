"""Exception hierarchy raised by the ledger core."""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by :mod:`budget_ledger`."""


class ValidationError(LedgerError):
    """A template or entry is malformed (missing start period, bad amount or day)."""


class ProtectedCategoryError(ValidationError):
    """Raised when trying to delete the fallback ``Other`` category."""


class NotFoundError(LedgerError):
    """An operation referenced an id the store does not have."""

    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} '{item_id}' not found")
        self.kind = kind
        self.item_id = item_id


class DuplicateRecurringEntry(LedgerError):
    """The store already holds an entry for this (template, period) pair."""

    def __init__(self, template_id: str, period_key: str):
        super().__init__(f"entry for template '{template_id}' in {period_key} already exists")
        self.template_id = template_id
        self.period_key = period_key


class InvalidFormat(LedgerError):
    """A backup blob failed structural validation; nothing was modified."""

    def __init__(self, reason: str, field: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.field = field


class PartialFailure(LedgerError):
    """A restore or clear failed after the wipe step.

    The account is left in whatever state the completed steps produced.
    ``step`` names the step that raised; the original exception is chained.
    """

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
