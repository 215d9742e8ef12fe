"""
HTTP client for the agent backend.

Every call carries the bearer credential in the ``Token`` header; a missing
credential is rejected locally before a request is built.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError

from core.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_HISTORY_LIMIT,
    TOKEN_HEADER,
    UPLOAD_FIELD_NAME,
)
from core.errors import AuthMissingError, NetworkError, ValidationError
from core.models import Attachment, BatchResult, Message, Session, Thread
from core.types import (
    BatchDeletePayload,
    BatchDeleteRequest,
    MessagesPayload,
    SessionPayload,
    SupervisorReply,
    SupervisorRequest,
    ThreadListPayload,
    UploadPayload,
)
from core.utils.urls import relative_file_path

logger = logging.getLogger(__name__)


class AgentApiClient:
    """
    Async client for the session, supervisor, thread and file endpoints.

    Non-2xx responses and transport failures raise ``NetworkError``;
    bodies that do not match the expected shape raise ``NetworkError`` too.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._history_limit = history_limit
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AgentApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def token(self) -> Optional[str]:
        return self._token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._token = value or None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def file_url(self, remote_path: str) -> str:
        """Absolute URL of an uploaded file from its stored path."""
        if remote_path.startswith(("http://", "https://")):
            return remote_path
        if not remote_path.startswith("/"):
            remote_path = "/" + remote_path
        return self._base_url + remote_path

    # ========== Transport ==========

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            raise AuthMissingError()
        return {TOKEN_HEADER: self._token}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = self._auth_headers()
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(f"Request failed: {e}") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, error)
            raise error
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[BaseModel]) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, PayloadValidationError) as e:
            raise NetworkError(f"Malformed response from {response.request.url.path}") from e

    # ========== Session & agent ==========

    async def start_session(self) -> Session:
        """Mint a fresh ``{owner, thread}`` binding."""
        response = await self._request("POST", "/start-session", json={})
        payload: SessionPayload = self._parse(response, SessionPayload)
        return payload.to_session()

    async def call_supervisor(self, query: str, session: Session) -> str:
        """Send a composed query to the agent and return its reply text."""
        body = SupervisorRequest(
            query=query,
            user_id=session.owner_id,
            thread_id=session.thread_id,
        )
        response = await self._request("POST", "/supervisor", json=body.model_dump())
        reply: SupervisorReply = self._parse(response, SupervisorReply)
        return reply.response

    # ========== Threads ==========

    async def list_threads(self) -> list[Thread]:
        response = await self._request("GET", "/threads")
        try:
            payload = ThreadListPayload.parse(response.json())
        except (ValueError, PayloadValidationError) as e:
            raise NetworkError("Malformed response from /threads") from e
        return [thread.to_thread() for thread in payload.threads]

    async def create_thread(self) -> Session:
        response = await self._request("POST", "/threads", json={})
        payload: SessionPayload = self._parse(response, SessionPayload)
        return payload.to_session()

    async def delete_thread(self, thread_id: str) -> None:
        await self._request("DELETE", f"/threads/{thread_id}")

    async def batch_delete_threads(self, thread_ids: list[str]) -> BatchResult:
        if not thread_ids:
            raise ValidationError("A non-empty list of thread ids is required")
        body = BatchDeleteRequest(thread_ids=list(thread_ids))
        response = await self._request(
            "POST", "/threads/batch-delete", json=body.model_dump()
        )
        payload: BatchDeletePayload = self._parse(response, BatchDeletePayload)
        return BatchResult(succeeded=payload.deleted, failed=payload.failed)

    async def get_messages(
        self, thread_id: str, limit: Optional[int] = None
    ) -> list[Message]:
        """Stored history of a thread, in server order."""
        response = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            params={"limit": limit or self._history_limit},
        )
        payload: MessagesPayload = self._parse(response, MessagesPayload)
        return [message.to_message() for message in payload.messages]

    # ========== Files ==========

    async def upload_file(self, attachment: Attachment, session: Session) -> str:
        """Upload one file into the session's storage and return its stored path."""
        files = {
            UPLOAD_FIELD_NAME: (
                attachment.name,
                attachment.raw_content,
                attachment.content_type,
            )
        }
        response = await self._request(
            "POST",
            f"/files/{session.owner_id}/{session.thread_id}",
            files=files,
        )
        payload: UploadPayload = self._parse(response, UploadPayload)
        return payload.uploaded[0]

    async def delete_file(self, remote_path: str) -> None:
        relative = relative_file_path(remote_path)
        if relative is None:
            raise ValidationError(f"Invalid file path format: {remote_path}")
        await self._request("DELETE", f"/files/{relative}")


def _error_from_response(response: httpx.Response) -> NetworkError:
    """Build a NetworkError from a non-2xx response's ``error``/``detail`` body."""
    detail: Any = None
    try:
        body = response.json()
    except ValueError:
        body = None

    message = response.reason_phrase or "Request failed"
    if isinstance(body, dict):
        detail = body
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if value:
                message = value if isinstance(value, str) else str(value)
                break

    return NetworkError(message, status_code=response.status_code, detail=detail)
