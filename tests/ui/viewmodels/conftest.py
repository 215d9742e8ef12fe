"""Shared fixtures for view model tests."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from jose import jwt

from core.persistence import Database, SessionStore, SettingsRepository
from ui.viewmodels.chat.session_manager import SessionManager

API_BASE_URL = "http://api.test"

ASYNC_OPERATIONS = (
    "start_session",
    "call_supervisor",
    "list_threads",
    "create_thread",
    "delete_thread",
    "batch_delete_threads",
    "get_messages",
    "upload_file",
    "delete_file",
    "aclose",
)


def make_token(owner_id: str = "owner-1") -> str:
    return jwt.encode({"user_id": owner_id}, "test-secret", algorithm="HS256")


@pytest.fixture
def api():
    """Create a mock AgentApiClient holding a decodable token."""
    client = Mock()
    client.token = make_token()
    client.has_token = True
    client.base_url = API_BASE_URL
    client.file_url.side_effect = lambda path: API_BASE_URL + path
    for name in ASYNC_OPERATIONS:
        setattr(client, name, AsyncMock())
    client.list_threads.return_value = []
    client.get_messages.return_value = []
    return client


@pytest.fixture
def session_store(tmp_path: Path) -> SessionStore:
    return SessionStore(SettingsRepository(Database(tmp_path / "client.db")))


@pytest.fixture
def session_manager(api, session_store, qtbot) -> SessionManager:
    return SessionManager(api_client=api, session_store=session_store)
