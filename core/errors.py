"""Exception taxonomy for the chat client core."""

from __future__ import annotations

from typing import Optional


class ChatClientError(Exception):
    """Base class for all client-side chat errors."""


class AuthMissingError(ChatClientError):
    """Raised before any network call when no credential is available."""

    def __init__(self, message: str = "No authentication token. Please log in again."):
        super().__init__(message)


class SessionError(ChatClientError):
    """Raised when a session could not be established or attached."""


class NetworkError(ChatClientError):
    """A remote call failed at the transport level or returned non-2xx."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[object] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (HTTP {self.status_code})"


class ValidationError(ChatClientError):
    """Malformed client-side input, rejected before any network call."""
