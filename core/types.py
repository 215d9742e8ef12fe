"""
Wire types for the agent backend.
All payloads are Pydantic models matching the backend's JSON shapes.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models import Message, MessageSender, Session, Thread, ThreadRole


class SessionPayload(BaseModel):
    """Response of session start and thread creation."""
    model_config = ConfigDict(extra="ignore")

    session_uuid: str = Field(min_length=1)
    inner_uuid: str = Field(min_length=1)

    def to_session(self) -> Session:
        return Session(owner_id=self.session_uuid, thread_id=self.inner_uuid)


class SupervisorRequest(BaseModel):
    """Body of a supervisor (agent) call."""
    query: str
    user_id: str
    thread_id: str


class SupervisorReply(BaseModel):
    """Reply of a supervisor (agent) call."""
    model_config = ConfigDict(extra="ignore")

    response: str = ""


class ThreadPayload(BaseModel):
    """A thread summary as listed by the backend."""
    model_config = ConfigDict(extra="ignore")

    thread_id: str
    last_message: Optional[str] = ""
    last_message_at: Optional[str] = None
    last_role: Optional[str] = None

    def to_thread(self) -> Thread:
        role = None
        if self.last_role in (ThreadRole.AI.value, ThreadRole.HUMAN.value):
            role = ThreadRole(self.last_role)
        return Thread(
            thread_id=self.thread_id,
            last_message=self.last_message or "",
            last_message_at=self.last_message_at,
            last_role=role,
        )


class ThreadListPayload(BaseModel):
    """Thread catalog; the backend may also answer with a bare array."""
    model_config = ConfigDict(extra="ignore")

    threads: list[ThreadPayload] = Field(default_factory=list)

    @classmethod
    def parse(cls, data: Any) -> "ThreadListPayload":
        if isinstance(data, list):
            return cls(threads=data)
        return cls.model_validate(data or {})


class BatchDeleteRequest(BaseModel):
    thread_ids: list[str]


class BatchDeletePayload(BaseModel):
    """Counts reported by a batch thread delete."""
    model_config = ConfigDict(extra="ignore")

    deleted: int = 0
    failed: int = 0

    @field_validator("deleted", "failed", mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return value or 0


class MessagePayload(BaseModel):
    """A stored message as returned by the history endpoint."""
    model_config = ConfigDict(extra="ignore")

    id: str
    sender: str
    text: str = ""
    timestamp: Optional[Union[float, str]] = None

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            sender=MessageSender.from_wire(self.sender),
            text=self.text,
            timestamp=_parse_timestamp(self.timestamp),
        )


class MessagesPayload(BaseModel):
    """Stored history of one thread."""
    model_config = ConfigDict(extra="ignore")

    messages: list[MessagePayload] = Field(default_factory=list)


class UploadPayload(BaseModel):
    """Stored paths of uploaded files; the first one is the file just sent."""
    model_config = ConfigDict(extra="ignore")

    uploaded: list[str] = Field(min_length=1)


def _parse_timestamp(value: Optional[Union[float, str]]) -> datetime:
    """Parse epoch milliseconds or an ISO string as an aware UTC datetime.

    Naive ISO strings are taken as UTC; missing or unparsable values fall
    back to now.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
