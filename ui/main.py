"""
Composition root for the Agent Desk client.

A view layer calls ``build_coordinator`` once at startup and binds to the
returned coordinator's signals; its async operations run on the Qt event
loop through ``PySide6.QtAsyncio``. On shutdown the view awaits
``coordinator.aclose()`` to release the HTTP connection pool.
"""

import logging
from typing import Optional

from PySide6.QtCore import QObject

from core.config import get_auth_token, load_config
from core.infrastructure.token_claims import display_name_from_token
from core.logging_config import configure_logging
from core.persistence import Database, SessionStore, SettingsRepository
from ui.viewmodels.chat.coordinator import ChatCoordinator

logger = logging.getLogger(__name__)


def build_coordinator(
    database: Optional[Database] = None,
    setup_logging: bool = True,
    parent: Optional[QObject] = None,
) -> ChatCoordinator:
    """Wire configuration, credential and durable storage into a coordinator.

    Args:
        database: Database for settings and the session slot (default location if None)
        setup_logging: Install the file and console log handlers first
        parent: Optional parent QObject
    """
    if setup_logging:
        log_file = configure_logging()
        logger.info("Logging to %s", log_file)

    database = database or Database()
    settings = SettingsRepository(database)
    config = load_config(settings)
    logger.info("Using backend at %s", config.api_base_url)

    token = get_auth_token()
    if token:
        logger.info("Signed in as %s", display_name_from_token(token) or "unknown user")
    else:
        logger.warning("No auth token stored; remote calls will fail until one is set")

    return ChatCoordinator.from_config(
        config,
        SessionStore(settings),
        token=token,
        parent=parent,
    )
