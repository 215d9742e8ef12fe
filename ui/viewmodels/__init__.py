"""ViewModels package for the Agent Desk client."""

# Import ThreadRegistry first; the chat coordinator depends on it
from ui.viewmodels.thread_registry import ThreadRegistry
from ui.viewmodels.chat import ChatCoordinator

__all__ = [
    "ChatCoordinator",
    "ThreadRegistry",
]
