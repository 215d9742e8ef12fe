"""Domain models for the chat client state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
import mimetypes
import uuid


class MessageSender(str, Enum):
    """Author of a chat message."""

    USER = "user"
    AGENT = "agent"

    @classmethod
    def from_wire(cls, value: str) -> "MessageSender":
        """Map a backend sender label onto a sender.

        The backend labels agent turns as ``bot``, ``ai`` or ``assistant``;
        anything that is not the user is treated as the agent.
        """
        if (value or "").strip().lower() in ("user", "human"):
            return cls.USER
        return cls.AGENT


class AttachmentStatus(str, Enum):
    """Upload lifecycle state of an attachment."""

    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    ERROR = "error"
    DELETING = "deleting"


class AttachmentKind(str, Enum):
    """Media kind of an attachment, derived from its content type."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    OTHER = "other"


class ThreadRole(str, Enum):
    """Role of the last message in a thread summary."""

    AI = "AI"
    HUMAN = "Human"


@dataclass
class Setting:
    """A persisted client setting."""

    key: str
    value: str
    category: str
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Session:
    """Binding between the user's remote identity and a thread."""

    owner_id: str
    thread_id: str

    @classmethod
    def from_wire(cls, data: dict) -> "Session":
        """Create a session from a ``{session_uuid, inner_uuid}`` mapping."""
        return cls(owner_id=data["session_uuid"], thread_id=data["inner_uuid"])

    def to_wire(self) -> dict[str, str]:
        return {"session_uuid": self.owner_id, "inner_uuid": self.thread_id}


@dataclass(frozen=True)
class Thread:
    """Catalog entry for a persisted conversation."""

    thread_id: str
    last_message: str = ""
    last_message_at: Optional[str] = None
    last_role: Optional[ThreadRole] = None


@dataclass(frozen=True)
class Message:
    """A single immutable message in a thread's log."""

    id: str
    sender: MessageSender
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, sender: MessageSender, text: str) -> "Message":
        """Create a message with an auto-generated ID."""
        return cls(
            id=str(uuid.uuid4()),
            sender=sender,
            text=text,
            timestamp=datetime.now(timezone.utc),
        )

    @property
    def is_user(self) -> bool:
        return self.sender == MessageSender.USER

    @property
    def display_text(self) -> str:
        """Text with uploaded-file URLs collapsed to their file names."""
        from core.utils.urls import format_for_display

        return format_for_display(self.text)


@dataclass(frozen=True)
class LocalFile:
    """A file picked or dropped by the user, not yet uploaded."""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str | Path) -> "LocalFile":
        """Read a file from disk, guessing its content type from the name."""
        path_obj = Path(path)
        content_type, _ = mimetypes.guess_type(path_obj.name)
        return cls(
            name=path_obj.name,
            content=path_obj.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Attachment:
    """A file scoped to the next outgoing message."""

    id: str
    raw_content: bytes
    name: str
    size_bytes: int
    kind: AttachmentKind
    content_type: str = "application/octet-stream"
    status: AttachmentStatus = AttachmentStatus.PENDING
    preview_ref: Optional[str] = None
    remote_path: Optional[str] = None

    @classmethod
    def create(
        cls,
        file: LocalFile,
        kind: AttachmentKind,
        preview_ref: Optional[str] = None,
    ) -> "Attachment":
        """Register a picked file as a pending attachment."""
        return cls(
            id=str(uuid.uuid4()),
            raw_content=file.content,
            name=file.name,
            size_bytes=file.size,
            kind=kind,
            content_type=file.content_type,
            preview_ref=preview_ref,
        )

    def with_status(
        self,
        status: AttachmentStatus,
        remote_path: Optional[str] = None,
    ) -> "Attachment":
        """Return a copy in a new status, optionally recording the remote path."""
        if remote_path is None:
            return replace(self, status=status)
        return replace(self, status=status, remote_path=remote_path)


@dataclass(frozen=True)
class BatchResult:
    """Count-only outcome of a batch operation."""

    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def partial_failure(self) -> bool:
        return self.succeeded > 0 and self.failed > 0
