"""Persistence package exports."""

from .database import Database
from .settings_repository import SettingsRepository
from .session_store import SessionStore

__all__ = [
    "Database",
    "SettingsRepository",
    "SessionStore",
]
