"""ChatCoordinator - Facade coordinating all chat subsystems."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from PySide6.QtCore import QObject, Signal

from core.api import AgentApiClient
from core.config import ClientConfig, clear_auth_token, store_auth_token
from core.constants import DEFAULT_GREETING
from core.errors import AuthMissingError, SessionError
from core.models import BatchResult, LocalFile, Message, Session
from core.persistence import SessionStore
from ui.viewmodels.chat.attachment_handler import AttachmentHandler
from ui.viewmodels.chat.message_pipeline import MessagePipeline
from ui.viewmodels.chat.session_manager import SessionManager
from ui.viewmodels.thread_registry import ThreadRegistry

logger = logging.getLogger(__name__)


class ChatCoordinator(QObject):
    """Facade coordinating all chat subsystems.

    This coordinator provides a unified interface to the chat view by
    delegating to specialized subsystems:
    - ThreadRegistry: Thread catalog listing and CRUD
    - SessionManager: Session binding for the selected thread
    - AttachmentHandler: Upload and deletion of message attachments
    - MessagePipeline: Message log, history loading and sending

    The selected thread is the fencing reference: results of session and
    history calls made for a thread that is no longer selected are ignored.
    """

    # Forwarded signals from subsystems
    message_added = Signal(object)
    messages_loaded = Signal(object)
    is_typing_changed = Signal(bool)
    is_loading_thread_changed = Signal(bool)
    is_initializing_changed = Signal(bool)
    session_changed = Signal(object)
    attachments_changed = Signal(object)
    attachment_status_changed = Signal(str, str)
    is_uploading_changed = Signal(bool)
    threads_changed = Signal()
    error_occurred = Signal(str)

    selected_thread_changed = Signal(object)

    def __init__(
        self,
        api_client: AgentApiClient,
        session_store: SessionStore,
        greeting: str = DEFAULT_GREETING,
        history_limit: Optional[int] = None,
        preview_dir: Optional[Path] = None,
        parent: Optional[QObject] = None,
    ):
        """Initialize the chat coordinator.

        Args:
            api_client: Backend client shared by all subsystems
            session_store: Durable last-active session slot
            greeting: Greeting shown for threads without history
            history_limit: Page size for history loads
            preview_dir: Directory for image preview files (system temp if None)
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._api = api_client
        self._selected_thread_id: Optional[str] = None

        self.threads = ThreadRegistry(api_client, parent=self)
        self.sessions = SessionManager(api_client, session_store, parent=self)
        self.attachments = AttachmentHandler(
            api_client, self.sessions, preview_dir=preview_dir, parent=self
        )
        self.pipeline = MessagePipeline(
            api_client,
            self.sessions,
            greeting=greeting,
            history_limit=history_limit,
            parent=self,
        )

        self._connect_signals()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        session_store: SessionStore,
        token: Optional[str] = None,
        parent: Optional[QObject] = None,
    ) -> "ChatCoordinator":
        """Build a coordinator and its backend client from loaded configuration."""
        api_client = AgentApiClient(
            base_url=config.api_base_url,
            token=token,
            timeout=config.request_timeout,
            history_limit=config.history_limit,
        )
        return cls(
            api_client,
            session_store,
            greeting=config.greeting,
            history_limit=config.history_limit,
            parent=parent,
        )

    def _connect_signals(self):
        """Forward signals from subsystems to coordinator signals."""
        # Pipeline signals
        self.pipeline.message_added.connect(self.message_added)
        self.pipeline.messages_loaded.connect(self.messages_loaded)
        self.pipeline.is_typing_changed.connect(self.is_typing_changed)
        self.pipeline.is_loading_thread_changed.connect(self.is_loading_thread_changed)

        # Session signals
        self.sessions.session_changed.connect(self.session_changed)
        self.sessions.is_initializing_changed.connect(self.is_initializing_changed)
        self.sessions.error_occurred.connect(self.error_occurred)

        # Attachment signals; notices are shown as agent messages
        self.attachments.attachments_changed.connect(self.attachments_changed)
        self.attachments.attachment_status_changed.connect(self.attachment_status_changed)
        self.attachments.is_uploading_changed.connect(self.is_uploading_changed)
        self.attachments.notice.connect(self.pipeline.append_notice)

        # Thread catalog signals
        self.threads.threads_changed.connect(self.threads_changed)
        self.threads.error_occurred.connect(self.error_occurred)

    # ========== Properties ==========

    @property
    def api_client(self) -> AgentApiClient:
        return self._api

    @property
    def messages(self) -> list[Message]:
        """Get the current message log."""
        return self.pipeline.messages

    @property
    def selected_thread_id(self) -> Optional[str]:
        return self._selected_thread_id

    @property
    def current_session(self) -> Optional[Session]:
        return self.sessions.current_session

    @property
    def is_typing(self) -> bool:
        return self.pipeline.is_typing

    @property
    def can_send(self) -> bool:
        """True once the selected thread's session and history are settled
        and no agent reply is outstanding."""
        selected = self._selected_thread_id
        return (
            selected is not None
            and not self.pipeline.is_typing
            and not self.pipeline.is_loading_thread
            and not self.sessions.is_initializing
            and self.sessions.current_thread_id == selected
            and self.pipeline.loaded_thread_id == selected
        )

    def _set_selected(self, thread_id: Optional[str]) -> None:
        if self._selected_thread_id != thread_id:
            self._selected_thread_id = thread_id
            self.selected_thread_changed.emit(thread_id)

    # ========== Credential ==========

    def set_credential(self, token: str, persist: bool = True) -> None:
        """Use ``token`` for all backend calls, optionally storing it in the keyring."""
        self._api.token = token
        if persist and not store_auth_token(token):
            logger.warning("Token could not be stored in the keyring; it is kept for this run only")

    async def logout(self) -> None:
        """Drop attachments, the session slot, the message log and the credential."""
        await self.attachments.clear()
        self.sessions.clear()
        self.pipeline.reset()
        self._set_selected(None)
        self._api.token = None
        clear_auth_token()
        logger.info("Logged out")

    async def aclose(self) -> None:
        """Close the backend client's connections; call once on shutdown."""
        await self._api.aclose()

    # ========== Threads & sessions ==========

    async def _establish(self, thread_id: Optional[str]) -> Optional[Session]:
        try:
            return await self.sessions.establish(thread_id)
        except AuthMissingError as e:
            self.error_occurred.emit(str(e))
        except SessionError:
            # Already reported through sessions.error_occurred
            pass
        return None

    async def _open(self, thread_id: Optional[str]) -> Optional[Session]:
        session = await self._establish(thread_id)
        if session is None:
            return None

        if self._selected_thread_id == thread_id:
            # Minted sessions may carry a thread id other than the requested one
            self._set_selected(session.thread_id)
        if session.thread_id != self._selected_thread_id:
            logger.info(
                "Ignoring session for thread %s - selection moved to %s",
                session.thread_id,
                self._selected_thread_id,
            )
            return None

        await self.pipeline.load_history(session.thread_id)
        return session

    async def start(self, thread_id: Optional[str] = None) -> Optional[Session]:
        """Load the thread catalog and open ``thread_id`` (a new thread when None)."""
        self._set_selected(thread_id)
        await self.threads.refresh()
        return await self._open(thread_id)

    async def select_thread(self, thread_id: str) -> Optional[Session]:
        """Switch the conversation view to ``thread_id``.

        Returns:
            The session for the thread, or None if it failed or the
            selection moved on before it resolved
        """
        if thread_id == self._selected_thread_id and self.pipeline.loaded_thread_id == thread_id:
            return self.sessions.current_session

        self._set_selected(thread_id)
        self.pipeline.reset()
        return await self._open(thread_id)

    async def new_thread(self) -> Optional[Session]:
        """Create a thread and make it the selected one."""
        session = await self.threads.create()
        if session is None:
            return None
        self._set_selected(session.thread_id)
        self.pipeline.reset()
        self.sessions.adopt(session)
        await self.pipeline.load_history(session.thread_id)
        return session

    async def _select_fallback(self) -> None:
        remaining = self.threads.threads
        if remaining:
            await self.select_thread(remaining[0].thread_id)
        else:
            await self.new_thread()

    async def delete_thread(self, thread_id: str) -> bool:
        deleted = await self.threads.delete(thread_id)
        if deleted and thread_id == self._selected_thread_id:
            await self._select_fallback()
        return deleted

    async def delete_threads(self, thread_ids: Sequence[str]) -> BatchResult:
        """Batch delete; raises ValidationError for an empty id list."""
        result = await self.threads.delete_many(thread_ids)
        selected = self._selected_thread_id
        if (
            result.succeeded
            and selected in thread_ids
            and all(thread.thread_id != selected for thread in self.threads.threads)
        ):
            await self._select_fallback()
        return result

    # ========== Messages ==========

    async def send_message(self, text: str) -> Optional[Message]:
        """Send ``text`` with the ready attachments.

        Ignored unless ``can_send``; the view keeps the draft in that case.
        """
        if not self.can_send:
            logger.debug(
                "Ignoring send for thread %s (typing=%s, loading=%s, session thread=%s)",
                self._selected_thread_id,
                self.pipeline.is_typing,
                self.pipeline.is_loading_thread,
                self.sessions.current_thread_id,
            )
            return None
        return await self.pipeline.send(text, self.attachments.ready_attachments)

    # ========== Attachments ==========

    async def add_files(self, files: Sequence[Union[LocalFile, str, Path]]) -> BatchResult:
        """Attach files, given as LocalFile objects or paths on disk."""
        local_files: list[LocalFile] = []
        for item in files:
            if isinstance(item, LocalFile):
                local_files.append(item)
                continue
            try:
                local_files.append(LocalFile.from_path(item))
            except OSError as e:
                logger.warning("Could not read %s: %s", item, e)
                self.pipeline.append_notice(f"Error: could not read {Path(item).name}")
        if not local_files:
            return BatchResult(failed=len(files))
        result = await self.attachments.add(local_files)
        return BatchResult(
            succeeded=result.succeeded,
            failed=result.failed + len(files) - len(local_files),
        )

    async def remove_attachment(self, attachment_id: str) -> bool:
        return await self.attachments.remove(attachment_id)

    async def clear_attachments(self) -> BatchResult:
        return await self.attachments.clear()
