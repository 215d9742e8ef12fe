"""Unit tests for SessionManager."""

import pytest

from core.errors import AuthMissingError, NetworkError, SessionError
from core.models import Session


class TestSessionManagerInitialization:
    """Test SessionManager initialization."""

    def test_initial_properties(self, session_manager):
        assert session_manager.current_session is None
        assert session_manager.current_thread_id is None
        assert session_manager.is_initializing is False
        assert session_manager.error is None

    def test_restore_adopts_stored_session(self, session_manager, session_store, qtbot):
        session_store.save(Session(owner_id="owner-1", thread_id="thread-1"))

        with qtbot.waitSignal(session_manager.session_changed, timeout=1000) as blocker:
            restored = session_manager.restore()

        assert restored == Session(owner_id="owner-1", thread_id="thread-1")
        assert blocker.args == [restored]
        assert session_manager.current_thread_id == "thread-1"


class TestEstablish:
    """Test establish method."""

    @pytest.mark.asyncio
    async def test_missing_token_raises_before_io(self, session_manager, session_store, api):
        api.has_token = False

        with pytest.raises(AuthMissingError):
            await session_manager.establish("thread-1")

        api.start_session.assert_not_awaited()
        assert session_store.load() is None
        assert session_manager.current_session is None

    @pytest.mark.asyncio
    async def test_known_thread_attaches_from_token(self, session_manager, session_store, api):
        session = await session_manager.establish("thread-7")

        assert session == Session(owner_id="owner-1", thread_id="thread-7")
        api.start_session.assert_not_awaited()
        assert session_store.load() == session
        assert session_manager.pending_thread_id == "thread-7"

    @pytest.mark.asyncio
    async def test_matching_stored_session_is_restored(self, session_manager, session_store, api):
        api.token = "opaque-token"
        session_store.save(Session(owner_id="stored-owner", thread_id="thread-1"))

        session = await session_manager.establish("thread-1")

        assert session == Session(owner_id="stored-owner", thread_id="thread-1")
        api.start_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_thread_mints_session(self, session_manager, session_store, api, qtbot):
        api.start_session.return_value = Session(owner_id="owner-1", thread_id="fresh")
        states = []
        session_manager.is_initializing_changed.connect(states.append)

        session = await session_manager.establish()

        assert session.thread_id == "fresh"
        assert states == [True, False]
        assert session_store.load() == session

    @pytest.mark.asyncio
    async def test_undecodable_token_mints_session(self, session_manager, api):
        api.token = "opaque-token"
        api.start_session.return_value = Session(owner_id="owner-1", thread_id="minted")

        session = await session_manager.establish("thread-1")

        assert session.thread_id == "minted"
        api.start_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_sets_error_and_retry_reuses_thread(self, session_manager, api, qtbot):
        api.token = "opaque-token"
        api.start_session.side_effect = [
            NetworkError("unreachable"),
            Session(owner_id="owner-1", thread_id="thread-2"),
        ]

        with qtbot.waitSignal(session_manager.error_occurred, timeout=1000):
            with pytest.raises(SessionError):
                await session_manager.establish("thread-1")

        assert session_manager.error.startswith("Failed to start session")
        assert session_manager.is_initializing is False
        assert session_manager.current_session is None

        session = await session_manager.retry()

        assert session.thread_id == "thread-2"
        assert session_manager.error is None
        assert session_manager.pending_thread_id == "thread-1"

    @pytest.mark.asyncio
    async def test_last_writer_wins(self, session_manager, session_store):
        await session_manager.establish("thread-1")
        await session_manager.establish("thread-2")

        assert session_manager.current_thread_id == "thread-2"
        assert session_store.load().thread_id == "thread-2"


class TestAdoptAndClear:
    """Test adopt and clear methods."""

    def test_adopt_persists_session(self, session_manager, session_store):
        session = Session(owner_id="owner-1", thread_id="created")

        session_manager.adopt(session)

        assert session_manager.current_session == session
        assert session_store.load() == session

    def test_clear_wipes_slot(self, session_manager, session_store, qtbot):
        session_manager.adopt(Session(owner_id="owner-1", thread_id="thread-1"))

        with qtbot.waitSignal(session_manager.session_changed, timeout=1000) as blocker:
            session_manager.clear()

        assert blocker.args == [None]
        assert session_manager.current_session is None
        assert session_store.load() is None
