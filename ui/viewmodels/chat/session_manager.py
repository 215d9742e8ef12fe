"""SessionManager - Owns the active session binding and its durable slot."""

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from core.api import AgentApiClient
from core.errors import AuthMissingError, ChatClientError, SessionError
from core.infrastructure.token_claims import owner_id_from_token
from core.models import Session
from core.persistence import SessionStore

logger = logging.getLogger(__name__)


class SessionManager(QObject):
    """Establishes, caches and switches the conversation session.

    This class handles:
    - Restoring the last-active session when it matches the requested thread
    - Attaching to a known thread from the token's owner id (no round trip)
    - Minting a fresh session through the backend for brand-new threads
    - Persisting the resulting binding in the single durable slot

    A call records the thread it was made for before any I/O. Results are
    always applied (last writer wins); callers compare the returned
    session's thread id with their current selection before acting on it.

    Signals:
        session_changed(object): Emitted with the new Session (or None when cleared)
        is_initializing_changed(bool): Emitted when establishing starts/finishes
        error_occurred(str): Emitted when a session could not be established
    """

    session_changed = Signal(object)
    is_initializing_changed = Signal(bool)
    error_occurred = Signal(str)

    def __init__(
        self,
        api_client: AgentApiClient,
        session_store: SessionStore,
        parent: Optional[QObject] = None,
    ):
        """Initialize the session manager.

        Args:
            api_client: Backend client; also the holder of the credential
            session_store: Durable last-active session slot
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._api = api_client
        self._store = session_store

        self._current_session: Optional[Session] = None
        self._is_initializing: bool = False
        self._error: Optional[str] = None
        self._pending_thread_id: Optional[str] = None
        self._last_requested_thread_id: Optional[str] = None

    @property
    def current_session(self) -> Optional[Session]:
        """Get the active session."""
        return self._current_session

    @property
    def current_thread_id(self) -> Optional[str]:
        """Get the active session's thread ID."""
        return self._current_session.thread_id if self._current_session else None

    @property
    def is_initializing(self) -> bool:
        return self._is_initializing

    @property
    def error(self) -> Optional[str]:
        """Last establish error, cleared when a new attempt starts."""
        return self._error

    @property
    def pending_thread_id(self) -> Optional[str]:
        """Thread the most recent establish call was made for."""
        return self._pending_thread_id

    def _set_initializing(self, initializing: bool) -> None:
        if self._is_initializing != initializing:
            self._is_initializing = initializing
            self.is_initializing_changed.emit(initializing)

    def _apply(self, session: Session) -> Session:
        self._store.save(session)
        self._current_session = session
        self.session_changed.emit(session)
        return session

    def restore(self) -> Optional[Session]:
        """Adopt the stored session without any I/O, if one exists."""
        stored = self._store.load()
        if stored is not None:
            self._current_session = stored
            self.session_changed.emit(stored)
        return stored

    def adopt(self, session: Session) -> Session:
        """Make a session minted elsewhere (a freshly created thread) active."""
        self._pending_thread_id = session.thread_id
        self._last_requested_thread_id = session.thread_id
        self._error = None
        return self._apply(session)

    async def establish(self, thread_id: Optional[str] = None) -> Session:
        """Establish the session for ``thread_id`` (a new thread when None).

        Args:
            thread_id: The thread to bind to, or None to mint a new one

        Returns:
            The established session

        Raises:
            AuthMissingError: If no credential is available
            SessionError: If the backend call failed or returned garbage
        """
        if not self._api.has_token:
            raise AuthMissingError()

        self._pending_thread_id = thread_id
        self._last_requested_thread_id = thread_id
        self._error = None

        if thread_id:
            stored = self._store.load()
            if stored is not None and stored.thread_id == thread_id:
                logger.debug("Restored stored session for thread %s", thread_id)
                return self._apply(stored)

            owner_id = owner_id_from_token(self._api.token)
            if owner_id:
                return self._apply(Session(owner_id=owner_id, thread_id=thread_id))
            logger.info("Token carries no owner id, starting a session remotely")

        self._set_initializing(True)
        try:
            session = await self._api.start_session()
        except AuthMissingError:
            raise
        except ChatClientError as e:
            message = f"Failed to start session: {e}"
            logger.warning(message)
            self._error = message
            self.error_occurred.emit(message)
            raise SessionError(message) from e
        finally:
            self._set_initializing(False)

        if thread_id and self._pending_thread_id != thread_id:
            logger.info(
                "Session for thread %s resolved after a switch to %s",
                thread_id,
                self._pending_thread_id,
            )
        return self._apply(session)

    async def retry(self) -> Session:
        """Re-invoke establish for the thread of the last attempt."""
        return await self.establish(self._last_requested_thread_id)

    def clear(self) -> None:
        """Forget the active session and wipe the durable slot (logout)."""
        self._store.clear()
        self._current_session = None
        self._pending_thread_id = None
        self._error = None
        self.session_changed.emit(None)
