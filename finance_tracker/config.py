"""Configuration management for the finance tracker.

This module centralizes all configuration values including paths,
logging defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FINTRACK_DATA_DIR", _PROJECT_ROOT / "data"))

# Database
DB_PATH = Path(
    os.getenv("FINTRACK_DB_PATH", DATA_DIR / "finance.db")
).resolve()

# Seconds a connection waits on a locked database before giving up
DB_TIMEOUT = float(os.getenv("FINTRACK_DB_TIMEOUT", "30"))

LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Defaults file shipped with the package
DEFAULTS_PATH = Path(
    os.getenv("FINTRACK_DEFAULTS_PATH", Path(__file__).parent / "defaults.json")
).resolve()


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level. Entry points call this once."""
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
