"""Configuration management for the budget ledger.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in budget_ledger/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
BACKUPS_DIR = DATA_DIR / "backups"
EXPORTS_DIR = DATA_DIR / "exports"

# Database
DB_PATH = Path(
    os.getenv("BUDGET_DB_PATH", DATA_DIR / "budget.db")
).resolve()

# Opaque identity of the current user; authentication lives outside this package
DEFAULT_USER_ID = os.getenv("BUDGET_USER_ID", "local")

# Number of future months eagerly generated for a new recurring income source
FORWARD_MONTHS = int(os.getenv("BUDGET_FORWARD_MONTHS", "12"))

# Percentage of a budget at which a category starts raising alerts
ALERT_THRESHOLD = float(os.getenv("BUDGET_ALERT_THRESHOLD", "80"))

LOG_LEVEL = os.getenv("BUDGET_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, BACKUPS_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for command line entry points.

    Library modules only create loggers; handlers are attached here so
    that importing the package never changes the host's logging setup.
    """
    resolved = (level or LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format=LOG_FORMAT)
