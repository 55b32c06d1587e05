"""
Application settings.

Typed, validated view over the environment (see config/env.py). Values are
read on every get_settings() call so tests can monkeypatch the environment.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from friendscore.config import env

DEFAULT_TRUST_WEIGHT = 1.0
DEFAULT_MAX_WORKERS = 4


class Settings(BaseModel):
    """Runtime settings for the scoring engine and its SQLite store."""

    db_path: str = env.DEFAULT_DB_PATH
    default_trust_weight: float = Field(default=DEFAULT_TRUST_WEIGHT, ge=0.0, le=2.0)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=64)
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"


def get_settings() -> Settings:
    """
    Return the current application settings.

    Raises pydantic.ValidationError when an environment value is out of range
    (e.g. FRIENDSCORE_DEFAULT_TRUST_WEIGHT=3).
    """
    values: dict[str, Any] = {"db_path": env.get_db_path()}
    weight = env.get_default_trust_weight()
    if weight is not None:
        values["default_trust_weight"] = weight
    workers = env.get_max_workers()
    if workers is not None:
        values["max_workers"] = workers
    values["log_level"], values["log_format"] = env.get_log_settings()
    return Settings(**values)
