"""Top-level package for the budget ledger.

The primary modules are:

* ``periods`` – ``YYYY-MM`` calendar helpers
* ``recurring`` – materialization of recurring expense and income templates
* ``analytics`` – monthly and yearly aggregates over a snapshot
* ``db`` – the SQLite ledger store
* ``ledger`` – a write-through session over the store
* ``backup`` – JSON backup and restore, CSV export
* ``visualization`` – Plotly figures for the aggregates

A typical session:

```python
from budget_ledger import LedgerSession, LedgerStore

store = LedgerStore("budget.db")
store.init_db()
session = LedgerSession(store)
session.load()
session.reconcile()
```
"""

from .analytics import LedgerAnalytics  # noqa: F401
from .db import LedgerStore  # noqa: F401
from .errors import (  # noqa: F401
    DuplicateRecurringEntry,
    InvalidFormat,
    LedgerError,
    NotFoundError,
    PartialFailure,
    ProtectedCategoryError,
    ValidationError,
)
from .ledger import LedgerSession  # noqa: F401

__version__ = "0.1.0"
