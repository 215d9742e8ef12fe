"""AttachmentHandler - Manages the upload lifecycle of message attachments."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal

from core.api import AgentApiClient
from core.constants import SESSION_RECOVERY_FAILED_MESSAGE, UPLOAD_FAILED_MESSAGE
from core.errors import AuthMissingError, ChatClientError
from core.models import (
    Attachment,
    AttachmentKind,
    AttachmentStatus,
    BatchResult,
    LocalFile,
    Session,
)
from core.utils.file_types import classify_kind
from ui.viewmodels.chat.session_manager import SessionManager

logger = logging.getLogger(__name__)


class AttachmentHandler(QObject):
    """
    Manages file attachments for the next outgoing message.

    Files are registered as pending, then uploaded strictly one at a time.
    Successfully uploaded attachments join the ready set, which only
    ``remove`` and ``clear`` ever shrink; sending a message does not.

    Problems the user should see in the chat (no session, failed batch) are
    emitted as ``notice`` texts rather than raised.
    """

    attachments_changed = Signal(object)  # list[Attachment]
    attachment_status_changed = Signal(str, str)  # attachment id, status
    is_uploading_changed = Signal(bool)
    notice = Signal(str)

    def __init__(
        self,
        api_client: AgentApiClient,
        session_manager: SessionManager,
        preview_dir: Optional[Path] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._api = api_client
        self._sessions = session_manager
        self._preview_dir = preview_dir

        self._attachments: dict[str, Attachment] = {}
        self._ready: dict[str, Attachment] = {}
        # Batches queue on the lock so only one upload is ever in flight
        self._upload_lock = asyncio.Lock()
        self._batches_in_flight: int = 0

    @property
    def attachments(self) -> list[Attachment]:
        """Get a copy of all tracked attachments, in pick order."""
        return list(self._attachments.values())

    @property
    def ready_attachments(self) -> list[Attachment]:
        """Uploaded attachments available to reference in the next message."""
        return list(self._ready.values())

    @property
    def is_uploading(self) -> bool:
        """True while any batch is uploading or waiting for its turn."""
        return self._batches_in_flight > 0

    def has_attachments(self) -> bool:
        """Check if there are any tracked attachments."""
        return len(self._attachments) > 0

    def get(self, attachment_id: str) -> Optional[Attachment]:
        return self._attachments.get(attachment_id)

    # ========== State helpers ==========

    def _emit_changed(self) -> None:
        self.attachments_changed.emit(self.attachments)

    def _track_batch(self, delta: int) -> None:
        was_uploading = self.is_uploading
        self._batches_in_flight += delta
        if self.is_uploading != was_uploading:
            self.is_uploading_changed.emit(self.is_uploading)

    def _set_status(
        self,
        attachment_id: str,
        status: AttachmentStatus,
        remote_path: Optional[str] = None,
    ) -> Optional[Attachment]:
        attachment = self._attachments.get(attachment_id)
        if attachment is None:
            return None
        updated = attachment.with_status(status, remote_path=remote_path)
        self._attachments[attachment_id] = updated
        self.attachment_status_changed.emit(attachment_id, status.value)
        self._emit_changed()
        return updated

    def _create_preview(self, file: LocalFile) -> Optional[str]:
        try:
            with tempfile.NamedTemporaryFile(
                prefix="agent_desk_preview_",
                suffix=Path(file.name).suffix,
                dir=self._preview_dir,
                delete=False,
            ) as handle:
                handle.write(file.content)
                return handle.name
        except OSError as e:
            logger.warning("Could not create preview for %s: %s", file.name, e)
            return None

    @staticmethod
    def _release_preview(attachment: Attachment) -> None:
        if attachment.preview_ref:
            Path(attachment.preview_ref).unlink(missing_ok=True)

    def _register(self, file: LocalFile) -> Attachment:
        kind = classify_kind(file.content_type)
        preview = self._create_preview(file) if kind == AttachmentKind.IMAGE else None
        attachment = Attachment.create(file, kind, preview_ref=preview)
        self._attachments[attachment.id] = attachment
        return attachment

    # ========== Session ==========

    def _resolve_session(self, reentered: bool) -> tuple[Optional[Session], bool]:
        """Find the session to upload into.

        Returns:
            (session, establish_now) - establish_now means no session exists yet
            and a new one should be created before re-entering
        """
        session = self._sessions.current_session or self._sessions.restore()
        if session is not None:
            return session, False
        if reentered or self._sessions.is_initializing:
            return None, False
        return None, True

    # ========== Operations ==========

    async def add(self, files: Sequence[LocalFile], _reentered: bool = False) -> BatchResult:
        """Register and upload a batch of files, one at a time.

        Args:
            files: The picked or dropped files

        Returns:
            Count of uploaded and failed files in this batch
        """
        if not files:
            return BatchResult()

        if not self._api.has_token:
            self.notice.emit(f"Error: {AuthMissingError()}")
            return BatchResult(failed=len(files))

        session, establish_now = self._resolve_session(_reentered)
        if establish_now:
            try:
                await self._sessions.establish()
            except ChatClientError as e:
                logger.warning("Could not create a session for uploads: %s", e)
                self.notice.emit(f"Error initializing the session: {e}")
                return BatchResult(failed=len(files))
            return await self.add(files, _reentered=True)
        if session is None:
            self.notice.emit(SESSION_RECOVERY_FAILED_MESSAGE)
            return BatchResult(failed=len(files))

        batch = [self._register(file) for file in files]
        self._emit_changed()

        self._track_batch(1)
        try:
            async with self._upload_lock:
                return await self._upload_batch(batch, session)
        finally:
            self._track_batch(-1)

    async def _upload_batch(self, batch: Sequence[Attachment], session: Session) -> BatchResult:
        uploaded = 0
        for index, attachment in enumerate(batch):
            # Removed while waiting for its turn
            if self._set_status(attachment.id, AttachmentStatus.UPLOADING) is None:
                continue
            try:
                remote_path = await self._api.upload_file(attachment, session)
            except ChatClientError as e:
                logger.warning("Upload of %s failed: %s", attachment.name, e)
                failed = self._fail_remaining(batch[index:])
                self.notice.emit(UPLOAD_FAILED_MESSAGE)
                return BatchResult(succeeded=uploaded, failed=failed)

            updated = self._set_status(
                attachment.id, AttachmentStatus.UPLOADED, remote_path=remote_path
            )
            if updated is None:
                await self._discard_orphan(attachment, remote_path)
                continue
            self._ready[attachment.id] = updated
            uploaded += 1

        return BatchResult(succeeded=uploaded)

    def _fail_remaining(self, attachments: Sequence[Attachment]) -> int:
        failed = 0
        for attachment in attachments:
            current = self._attachments.get(attachment.id)
            if current and current.status in (
                AttachmentStatus.PENDING,
                AttachmentStatus.UPLOADING,
            ):
                self._set_status(attachment.id, AttachmentStatus.ERROR)
                failed += 1
        return failed

    async def _discard_orphan(self, attachment: Attachment, remote_path: str) -> None:
        """Delete an upload whose attachment was removed while in flight."""
        logger.info("Attachment %s removed during upload, deleting remote copy", attachment.name)
        try:
            await self._api.delete_file(remote_path)
        except ChatClientError as e:
            logger.warning("Could not delete orphaned upload %s: %s", remote_path, e)

    async def remove(self, attachment_id: str) -> bool:
        """Remove an attachment, deleting its remote copy if it was uploaded.

        Returns:
            True if the attachment is gone, False if it is unknown or the
            remote delete failed (it is then left in the error state)
        """
        attachment = self._attachments.get(attachment_id)
        if attachment is None:
            return False

        was_uploaded = attachment_id in self._ready and attachment.remote_path is not None
        self._set_status(attachment_id, AttachmentStatus.DELETING)

        if was_uploaded:
            try:
                await self._api.delete_file(attachment.remote_path)
            except ChatClientError as e:
                logger.warning("Failed to delete %s from the server: %s", attachment.name, e)
                self._set_status(attachment_id, AttachmentStatus.ERROR)
                return False
            self._ready.pop(attachment_id, None)

        removed = self._attachments.pop(attachment_id, None)
        if removed is not None:
            self._release_preview(removed)
        self._emit_changed()
        return True

    async def clear(self) -> BatchResult:
        """Remove every attachment, best-effort deleting the uploaded ones.

        Individual delete failures are logged and counted, never raised.

        Returns:
            Count of remote deletes that succeeded and failed
        """
        if not self._attachments:
            return BatchResult()

        snapshot = list(self._attachments.values())
        for attachment in snapshot:
            self._set_status(attachment.id, AttachmentStatus.DELETING)

        deleted = failed = 0
        for attachment in snapshot:
            if attachment.id in self._ready and attachment.remote_path:
                try:
                    await self._api.delete_file(attachment.remote_path)
                    deleted += 1
                except ChatClientError as e:
                    logger.warning("Failed to delete %s: %s", attachment.name, e)
                    failed += 1
            self._release_preview(attachment)

        self._attachments.clear()
        self._ready.clear()
        self._emit_changed()
        return BatchResult(succeeded=deleted, failed=failed)
