"""Backend API client package."""

from core.api.client import AgentApiClient

__all__ = ["AgentApiClient"]
