"""Chat subsystem - Decomposed chat management."""

from .session_manager import SessionManager
from .attachment_handler import AttachmentHandler
from .message_pipeline import MessagePipeline
from .coordinator import ChatCoordinator

__all__ = [
    "SessionManager",
    "AttachmentHandler",
    "MessagePipeline",
    "ChatCoordinator",
]
