"""HTTP client for the outbound message dispatch sink."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from backend.app.core.errors import MessageDispatchError

logger = logging.getLogger(__name__)


@dataclass
class DispatchRequest:
    conversation_id: int
    idempotency_key: str
    content: str = ""
    message_type: str = "text"
    sender_type: str = "system"
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    connection_id: Optional[int] = None

    def to_payload(self) -> dict:
        payload = {
            "conversation_id": self.conversation_id,
            "content": self.content,
            "message_type": self.message_type,
            "sender_type": self.sender_type,
            "clientMessageId": self.idempotency_key,
        }
        if self.file_url:
            payload["file_url"] = self.file_url
            payload["file_name"] = self.file_name
        if self.connection_id is not None:
            payload["connection_id"] = self.connection_id
        return payload


@dataclass
class DispatchResult:
    message_id: Optional[str]
    status: str = "sent"

    @property
    def duplicate(self) -> bool:
        return self.status == "duplicate"


class MessageSink(Protocol):
    def send(self, request: DispatchRequest) -> DispatchResult: ...


class HttpMessageSink:
    def __init__(self, url: str, timeout: float = 15.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, request: DispatchRequest) -> DispatchResult:
        try:
            response = self._client.post(self.url, json=request.to_payload(), timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise MessageDispatchError(f"Message sink unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise MessageDispatchError(f"Message sink returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
        except ValueError:
            # Empty 2xx bodies are accepted as sent
            data = {}
        if not isinstance(data, dict):
            data = {}
        if data.get("error") and not data.get("success"):
            raise MessageDispatchError(str(data.get("details") or data["error"]))

        message_id = data.get("message_id")
        message = data.get("message")
        if message_id is None and isinstance(message, dict):
            message_id = message.get("id")
        status = data.get("status")
        result = DispatchResult(
            message_id=str(message_id) if message_id is not None else None,
            status=status if isinstance(status, str) and status else "sent",
        )
        if result.duplicate:
            logger.info("Message %s already dispatched (key %s)", result.message_id, request.idempotency_key)
        return result

    def close(self) -> None:
        self._client.close()
