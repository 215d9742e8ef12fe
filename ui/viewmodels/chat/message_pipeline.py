"""MessagePipeline - Owns the message log and talks to the remote agent."""

import logging
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal

from core.api import AgentApiClient
from core.constants import DEFAULT_GREETING, GENERIC_SEND_ERROR_MESSAGE
from core.errors import ChatClientError
from core.models import Attachment, Message, MessageSender
from core.utils.file_types import tag_for
from core.utils.urls import annotate_for_sending, file_reference_line, format_for_display
from ui.viewmodels.chat.session_manager import SessionManager

logger = logging.getLogger(__name__)


class MessagePipeline(QObject):
    """Loads history on thread entry and sends composed messages.

    This class manages:
    - Loading a thread's stored history, fenced by the last thread loaded
    - Composing outgoing text with file-type annotations and attachment lines
    - Appending the user message before the agent call starts
    - Appending the agent reply, or an inline error message on failure

    Results that arrive after the pipeline moved to another thread are
    discarded. Nothing is retried automatically.

    Signals:
        message_added(object): Emitted with each Message appended to the log
        messages_loaded(object): Emitted with the full log after it is replaced
        is_typing_changed(bool): Emitted while an agent reply is outstanding
        is_loading_thread_changed(bool): Emitted while history is loading
    """

    message_added = Signal(object)
    messages_loaded = Signal(object)
    is_typing_changed = Signal(bool)
    is_loading_thread_changed = Signal(bool)

    def __init__(
        self,
        api_client: AgentApiClient,
        session_manager: SessionManager,
        greeting: str = DEFAULT_GREETING,
        history_limit: Optional[int] = None,
        parent: Optional[QObject] = None,
    ):
        """Initialize the message pipeline.

        Args:
            api_client: Backend client
            session_manager: Read access to the active session
            greeting: Text of the synthesized greeting for empty threads
            history_limit: Page size for history loads (client default if None)
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._api = api_client
        self._sessions = session_manager
        self._greeting = greeting
        self._history_limit = history_limit

        self._messages: list[Message] = []
        self._is_typing: bool = False
        self._is_loading_thread: bool = False
        # Fencing token: thread whose history the log holds (or is loading)
        self._thread_fence: Optional[str] = None

    @property
    def messages(self) -> list[Message]:
        """Get a copy of the current message log."""
        return self._messages.copy()

    @property
    def is_typing(self) -> bool:
        return self._is_typing

    @property
    def is_loading_thread(self) -> bool:
        return self._is_loading_thread

    @property
    def loaded_thread_id(self) -> Optional[str]:
        """Thread the log belongs to (the fencing token)."""
        return self._thread_fence

    def _set_typing(self, typing: bool) -> None:
        self._is_typing = typing
        self.is_typing_changed.emit(typing)

    def _set_loading_thread(self, loading: bool) -> None:
        self._is_loading_thread = loading
        self.is_loading_thread_changed.emit(loading)

    def _append(self, message: Message) -> Message:
        self._messages.append(message)
        self.message_added.emit(message)
        return message

    def _replace_log(self, messages: list[Message]) -> None:
        self._messages = messages
        self.messages_loaded.emit(messages.copy())

    def _greeting_message(self) -> Message:
        return Message.create(MessageSender.AGENT, self._greeting)

    # ========== History ==========

    async def load_history(self, thread_id: str) -> list[Message]:
        """Replace the log with ``thread_id``'s stored history.

        A repeat call for the thread already loaded (or loading) is a no-op.
        Failure or an empty history yields a single greeting message.

        Args:
            thread_id: The thread to load

        Returns:
            The log after the call
        """
        if thread_id == self._thread_fence:
            return self.messages

        self._thread_fence = thread_id
        self._set_loading_thread(True)
        try:
            history = await self._api.get_messages(thread_id, limit=self._history_limit)
        except ChatClientError as e:
            logger.warning("Failed to load history for thread %s: %s", thread_id, e)
            history = []

        if self._thread_fence != thread_id:
            logger.info(
                "Discarding history of thread %s - pipeline moved to %s",
                thread_id,
                self._thread_fence,
            )
            return self.messages

        self._replace_log(history or [self._greeting_message()])
        self._set_loading_thread(False)
        return self.messages

    def reset(self) -> None:
        """Empty the log and forget the loaded thread."""
        self._thread_fence = None
        if self._is_loading_thread:
            self._set_loading_thread(False)
        self._replace_log([])

    def append_notice(self, text: str) -> Message:
        """Append a synthesized agent message (errors, notices)."""
        return self._append(Message.create(MessageSender.AGENT, text))

    # ========== Sending ==========

    def compose(self, text: str, attachments: Sequence[Attachment] = ()) -> str:
        """Build the composite outgoing text.

        URLs of uploaded files in ``text`` get a file-type annotation, and one
        reference line per uploaded attachment is appended.
        """
        composite = annotate_for_sending(text)
        references = [
            file_reference_line(
                self._api.file_url(attachment.remote_path),
                tag_for(attachment.kind, attachment.name).value,
            )
            for attachment in attachments
            if attachment.remote_path
        ]
        if references:
            composite += "\n\nFiles:\n" + "\n".join(references)
        return composite

    async def send(
        self, text: str, attachments: Sequence[Attachment] = ()
    ) -> Optional[Message]:
        """Send a user message and append the agent's reply.

        Concurrent calls are not deduplicated; callers gate on ``is_typing``
        and ``is_loading_thread``, since a history load replaces the log.

        Args:
            text: The user's message text
            attachments: Uploaded attachments to reference in the message

        Returns:
            The appended agent message, or None if nothing was sent or the
            reply was discarded after a thread switch
        """
        trimmed = text.strip()
        if not trimmed:
            return None

        composite = self.compose(trimmed, attachments)
        self._append(Message.create(MessageSender.USER, composite))
        sent_for_thread = self._thread_fence

        self._set_typing(True)
        try:
            reply_text = await self._call_agent(composite)
            if self._thread_fence != sent_for_thread:
                logger.info(
                    "Discarding agent reply for thread %s - pipeline moved to %s",
                    sent_for_thread,
                    self._thread_fence,
                )
                return None
            return self._append(Message.create(MessageSender.AGENT, reply_text))
        finally:
            self._set_typing(False)

    async def _call_agent(self, composite: str) -> str:
        """Call the agent; failures become a human-readable error text."""
        session = self._sessions.current_session
        if session is None:
            return "Error: Session not initialized correctly"
        try:
            reply = await self._api.call_supervisor(composite, session)
        except ChatClientError as e:
            logger.warning("Agent call failed: %s", e)
            return f"Error: {e}" if str(e) else GENERIC_SEND_ERROR_MESSAGE
        return format_for_display(reply)
