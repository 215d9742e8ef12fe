"""Thread registry ViewModel for the conversation thread catalog."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject, Property, Signal

from core.api import AgentApiClient
from core.errors import ChatClientError, ValidationError
from core.models import BatchResult, Session, Thread

logger = logging.getLogger(__name__)


class ThreadRegistry(QObject):
    """ViewModel for listing, creating and deleting conversation threads.

    The catalog is only ever replaced by a fresh listing; every successful
    mutation triggers exactly one re-fetch.
    """

    threads_changed = Signal()
    is_loading_changed = Signal()
    error_occurred = Signal(str)

    def __init__(self, api_client: AgentApiClient, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._api = api_client

        self._threads: List[Thread] = []
        self._is_loading: bool = False
        self._error: Optional[str] = None

    @Property(list, notify=threads_changed)
    def threads(self) -> List[Thread]:
        return list(self._threads)

    @Property(bool, notify=is_loading_changed)
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def _set_loading(self, loading: bool) -> None:
        if self._is_loading != loading:
            self._is_loading = loading
            self.is_loading_changed.emit()

    def _fail(self, message: str) -> None:
        logger.warning(message)
        self._error = message
        self.error_occurred.emit(message)

    def filter(self, query: str) -> List[Thread]:
        """Threads whose last message or id contains ``query`` (case-insensitive)."""
        needle = query.strip().lower()
        if not needle:
            return list(self._threads)
        return [
            thread
            for thread in self._threads
            if needle in thread.last_message.lower() or needle in thread.thread_id.lower()
        ]

    async def refresh(self) -> List[Thread]:
        """Replace the catalog with the backend's current listing."""
        if not self._api.has_token:
            self._threads = []
            self.threads_changed.emit()
            return []

        self._set_loading(True)
        try:
            self._threads = await self._api.list_threads()
            self._error = None
        except ChatClientError as e:
            self._fail(f"Error loading threads: {e}")
            return list(self._threads)
        finally:
            self._set_loading(False)

        self.threads_changed.emit()
        return list(self._threads)

    async def create(self) -> Optional[Session]:
        """Create a new thread; returns its session binding, or None on failure."""
        try:
            session = await self._api.create_thread()
        except ChatClientError as e:
            self._fail(f"Error creating thread: {e}")
            return None
        logger.info("Created thread %s", session.thread_id)
        await self.refresh()
        return session

    async def delete(self, thread_id: str) -> bool:
        try:
            await self._api.delete_thread(thread_id)
        except ChatClientError as e:
            self._fail(f"Error deleting thread {thread_id}: {e}")
            return False
        await self.refresh()
        return True

    async def delete_many(self, thread_ids: Sequence[str]) -> BatchResult:
        """Delete several threads in one call.

        Raises:
            ValidationError: If ``thread_ids`` is empty
        """
        ids = list(thread_ids)
        if not ids:
            raise ValidationError("A non-empty list of thread ids is required")
        if not self._api.has_token:
            return BatchResult(succeeded=0, failed=len(ids))

        try:
            result = await self._api.batch_delete_threads(ids)
        except ChatClientError as e:
            self._fail(f"Error deleting threads: {e}")
            return BatchResult(succeeded=0, failed=len(ids))

        if result.partial_failure:
            logger.warning(
                "Batch delete partially failed: %d deleted, %d failed",
                result.succeeded,
                result.failed,
            )
        await self.refresh()
        return result
