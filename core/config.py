"""
Configuration loader for Agent Desk.

Loads client settings using a priority chain:
1. Environment variables (CI/CD support)
2. Persisted settings table (values saved from the app)
3. Built-in defaults

The auth token is a secret and lives in the OS keyring instead, with an
environment variable fallback.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from core.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_GREETING,
    DEFAULT_HISTORY_LIMIT,
)
from core.infrastructure.keyring_service import KeyringService, get_keyring_service

logger = logging.getLogger(__name__)


class SettingsSource(Protocol):
    """Read access to persisted settings (see SettingsRepository)."""

    def get_value(self, key: str, default: str = "") -> str: ...


@dataclass(frozen=True)
class ClientConfig:
    """Resolved client configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    history_limit: int = DEFAULT_HISTORY_LIMIT
    # None means no timeout: a stalled call stalls its status flag
    request_timeout: Optional[float] = None
    greeting: str = DEFAULT_GREETING


# Maps config fields to (environment variable, settings key)
_CONFIG_KEYS = {
    "api_base_url": ("AGENT_DESK_API_BASE_URL", "backend.api_base_url"),
    "history_limit": ("AGENT_DESK_HISTORY_LIMIT", "backend.history_limit"),
    "request_timeout": ("AGENT_DESK_REQUEST_TIMEOUT", "backend.request_timeout"),
    "greeting": ("AGENT_DESK_GREETING", "chat.greeting"),
}

# Global configuration cache
_config: Optional[ClientConfig] = None
_keyring_service: Optional[KeyringService] = None


def _get_keyring() -> KeyringService:
    """Get the keyring service instance."""
    global _keyring_service
    if _keyring_service is None:
        _keyring_service = get_keyring_service()
    return _keyring_service


def _raw_value(field_name: str, settings: Optional[SettingsSource]) -> Optional[str]:
    env_var, settings_key = _CONFIG_KEYS[field_name]
    value = os.environ.get(env_var)
    if value:
        return value.strip()
    if settings is not None:
        value = settings.get_value(settings_key, "")
        if value:
            return value.strip()
    return None


def _parse_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s value %r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s value %r, using %s", name, raw, default)
        return default
    return value


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw.lower() in ("none", "off", "0"):
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid request timeout %r, disabling timeout", raw)
        return None
    return value if value > 0 else None


def load_config(settings: Optional[SettingsSource] = None) -> ClientConfig:
    """
    Resolve the client configuration.

    The result is cached; pass ``settings`` or call ``clear_config_cache``
    to force a reload.

    Args:
        settings: Optional persisted settings to consult after the environment

    Returns:
        The resolved configuration
    """
    global _config

    if _config is not None and settings is None:
        return _config

    base_url = _raw_value("api_base_url", settings) or DEFAULT_API_BASE_URL
    config = ClientConfig(
        api_base_url=base_url.rstrip("/"),
        history_limit=_parse_int(
            _raw_value("history_limit", settings), DEFAULT_HISTORY_LIMIT, "history limit"
        ),
        request_timeout=_parse_timeout(_raw_value("request_timeout", settings)),
        greeting=_raw_value("greeting", settings) or DEFAULT_GREETING,
    )

    if base_url == DEFAULT_API_BASE_URL:
        logger.info("No API base URL configured, using %s", DEFAULT_API_BASE_URL)

    _config = config
    return config


def get_auth_token() -> Optional[str]:
    """
    Get the stored auth token.

    Priority: keyring → AGENT_DESK_TOKEN env var

    Returns:
        The token, or None if the user is not logged in
    """
    return _get_keyring().get_credential("token")


def store_auth_token(token: str) -> bool:
    """
    Store the auth token in the keyring.

    Returns:
        True if stored successfully, False otherwise
    """
    return _get_keyring().store_credential("token", token)


def clear_auth_token() -> bool:
    """Remove the auth token from the keyring (logout)."""
    return _get_keyring().delete_credential("token")


def clear_config_cache() -> None:
    """Clear the cached configuration. Useful for testing."""
    global _config
    _config = None
