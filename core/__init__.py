# Agent Desk - Core Package
"""
Core package for the Agent Desk chat client.
This package contains the domain models, the backend client, configuration
and persistence, and can be used independently of the UI layer.
"""

from core.config import load_config, get_auth_token
from core.errors import (
    AuthMissingError,
    ChatClientError,
    NetworkError,
    SessionError,
    ValidationError,
)
from core.models import Attachment, Message, Session, Thread

__all__ = [
    "load_config",
    "get_auth_token",
    "AuthMissingError",
    "ChatClientError",
    "NetworkError",
    "SessionError",
    "ValidationError",
    "Attachment",
    "Message",
    "Session",
    "Thread",
]
