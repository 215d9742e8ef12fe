"""
Secure credential storage using OS keyring.

Keeps the user's bearer token in the system's credential manager
(GNOME Keyring, macOS Keychain, Windows Credential Locker).
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class KeyringService:
    """
    Secure credential storage using OS keyring.

    Provides a unified interface for storing and retrieving the auth token
    in the operating system's secure credential vault.
    """

    SERVICE_NAME = "agent_desk"

    CREDENTIAL_NAMES = {
        "token": "auth_token",
    }

    # Environment variable names for fallback
    ENV_VAR_NAMES = {
        "token": "AGENT_DESK_TOKEN",
    }

    def __init__(self) -> None:
        """Initialize KeyringService and check availability."""
        self._available: Optional[bool] = None
        self._keyring_module = None

    @property
    def is_available(self) -> bool:
        """
        Check if keyring backend is available.

        Returns:
            True if keyring can be used, False otherwise.
        """
        if self._available is not None:
            return self._available

        try:
            import keyring
            from keyring.backends.fail import Keyring as FailKeyring

            self._keyring_module = keyring

            # A FailKeyring backend means nothing usable is installed
            backend = keyring.get_keyring()
            if isinstance(backend, FailKeyring):
                logger.warning(
                    "No secure keyring backend available. "
                    "Consider installing a backend like 'keyrings.alt' for headless environments."
                )
                self._available = False
            else:
                logger.debug("Using keyring backend: %s", type(backend).__name__)
                self._available = True
        except Exception as e:
            logger.warning("Failed to initialize keyring: %s", e)
            self._available = False

        return self._available

    def _get_keyring(self):
        """Get the keyring module, importing if needed."""
        if self._keyring_module is not None:
            return self._keyring_module

        if self.is_available:
            return self._keyring_module
        return None

    def _get_credential_name(self, name: str) -> str:
        """
        Get the full credential name for storage.

        Args:
            name: Short name (e.g., 'token') or full name

        Returns:
            Full credential name for keyring storage
        """
        return self.CREDENTIAL_NAMES.get(name.lower(), name)

    def store_credential(self, name: str, value: str) -> bool:
        """
        Store a credential in the keyring.

        Args:
            name: Credential name (e.g., 'token' or 'auth_token')
            value: The credential value to store

        Returns:
            True if stored successfully, False otherwise
        """
        if not self.is_available:
            logger.warning("Keyring not available, cannot store credential")
            return False

        try:
            keyring = self._get_keyring()
            credential_name = self._get_credential_name(name)
            keyring.set_password(self.SERVICE_NAME, credential_name, value)
            logger.debug("Stored credential: %s", credential_name)
            return True
        except Exception as e:
            logger.error("Failed to store credential %s: %s", name, e)
            return False

    def get_credential(self, name: str) -> Optional[str]:
        """
        Retrieve a credential from the keyring.

        Falls back to environment variables if keyring is unavailable or empty.

        Args:
            name: Credential name (e.g., 'token' or 'auth_token')

        Returns:
            The credential value, or None if not found
        """
        credential_name = self._get_credential_name(name)

        if self.is_available:
            try:
                keyring = self._get_keyring()
                value = keyring.get_password(self.SERVICE_NAME, credential_name)
                if value:
                    return value
            except Exception as e:
                logger.warning("Failed to get credential from keyring: %s", e)

        env_var = self.ENV_VAR_NAMES.get(name.lower())
        if env_var:
            value = os.environ.get(env_var)
            if value:
                logger.debug("Using %s from environment", env_var)
                return value

        return None

    def delete_credential(self, name: str) -> bool:
        """
        Delete a credential from the keyring.

        Args:
            name: Credential name to delete

        Returns:
            True if deleted successfully, False otherwise
        """
        if not self.is_available:
            return False

        try:
            keyring = self._get_keyring()
            credential_name = self._get_credential_name(name)
            keyring.delete_password(self.SERVICE_NAME, credential_name)
            logger.debug("Deleted credential: %s", credential_name)
            return True
        except Exception as e:
            # keyring raises PasswordDeleteError if not found
            logger.debug("Could not delete credential %s: %s", name, e)
            return False

    def has_credential(self, name: str) -> bool:
        """Check if a credential exists in the keyring or environment."""
        return self.get_credential(name) is not None


# Global singleton instance
_keyring_service: Optional[KeyringService] = None


def get_keyring_service() -> KeyringService:
    """
    Get the global KeyringService instance.

    Returns:
        The shared KeyringService instance
    """
    global _keyring_service
    if _keyring_service is None:
        _keyring_service = KeyringService()
    return _keyring_service
