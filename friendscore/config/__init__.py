"""
Configuration management for friendscore.

Loads settings from environment variables and an optional .env file and
exposes them as one validated Settings object.
"""

from friendscore.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
