"""
Environment variable loading for friendscore.

- FRIENDSCORE_DB_PATH: SQLite file for ratings, trust weights and results (default: friendscore.db)
- FRIENDSCORE_DEFAULT_TRUST_WEIGHT: weight for a trusted rater with no stored weight (default: 1.0)
- FRIENDSCORE_MAX_WORKERS: parallel items per viewer recalculation (default: 4)
- LOG_LEVEL / LOG_FORMAT: read by friendscore.logging
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: config is friendscore/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_DB_PATH = "friendscore.db"


def load_friendscore_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    from dotenv import load_dotenv

    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def _env(name: str) -> str | None:
    raw = (os.getenv(name) or "").strip()
    return raw or None


def get_db_path() -> str:
    """Return FRIENDSCORE_DB_PATH, or the default SQLite file in cwd."""
    load_friendscore_env()
    return _env("FRIENDSCORE_DB_PATH") or DEFAULT_DB_PATH


def get_default_trust_weight() -> str | None:
    """Raw FRIENDSCORE_DEFAULT_TRUST_WEIGHT; validated by Settings."""
    load_friendscore_env()
    return _env("FRIENDSCORE_DEFAULT_TRUST_WEIGHT")


def get_max_workers() -> str | None:
    """Raw FRIENDSCORE_MAX_WORKERS; validated by Settings."""
    load_friendscore_env()
    return _env("FRIENDSCORE_MAX_WORKERS")


def get_log_settings() -> tuple[str, str]:
    """Return (LOG_LEVEL, LOG_FORMAT) with defaults INFO / json."""
    load_friendscore_env()
    return (
        (_env("LOG_LEVEL") or "INFO").upper(),
        (_env("LOG_FORMAT") or "json").lower(),
    )
