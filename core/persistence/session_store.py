"""Durable single-slot storage for the last-active session."""

from __future__ import annotations

import json
import logging
from typing import Optional

from core.constants import SESSION_SLOT_CATEGORY, SESSION_SLOT_KEY
from core.models import Session
from .settings_repository import SettingsRepository

logger = logging.getLogger(__name__)


class SessionStore:
    """One global slot holding the last-active session binding.

    Writes overwrite the slot; the last writer wins.
    """

    def __init__(self, settings_repository: SettingsRepository, key: str = SESSION_SLOT_KEY):
        self._settings = settings_repository
        self._key = key

    def load(self) -> Optional[Session]:
        raw = self._settings.get_value(self._key, "")
        if not raw:
            return None
        try:
            return Session.from_wire(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable stored session: %s", e)
            return None

    def save(self, session: Session) -> None:
        self._settings.set(self._key, json.dumps(session.to_wire()), SESSION_SLOT_CATEGORY)

    def clear(self) -> None:
        self._settings.delete(self._key)
