"""Publish pipeline events so connected boards refresh without polling."""

import logging
from typing import Optional

import httpx

from backend.app.models.card import PipelineCard

logger = logging.getLogger(__name__)

CARD_MOVED_EVENT = "pipeline-card-moved"
AGENT_UPDATED_EVENT = "conversation-agent-updated"


def pipeline_channel(pipeline_id: int) -> str:
    return f"pipeline-{pipeline_id}"


class BroadcastNotifier:
    """Fire-and-forget publisher; failures are logged and never raised."""

    def __init__(self, url: str = "", timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def publish(self, channel: str, event: str, payload: dict) -> bool:
        if not self.url:
            logger.debug("Broadcast disabled, dropping %s on %s", event, channel)
            return False
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        try:
            response = self._client.post(
                self.url,
                json={"channel": channel, "event": event, "payload": payload},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Broadcast of %s on %s failed: %s", event, channel, exc)
            return False
        return True

    def card_moved(self, card: PipelineCard) -> bool:
        return self.publish(
            pipeline_channel(card.pipeline_id),
            CARD_MOVED_EVENT,
            {"cardId": card.id, "newColumnId": card.column_id},
        )

    def agent_updated(self, pipeline_id: int, conversation_id: int, active: bool, agent_id: Optional[str]) -> bool:
        return self.publish(
            pipeline_channel(pipeline_id),
            AGENT_UPDATED_EVENT,
            {"conversationId": conversation_id, "agente_ativo": active, "agent_active_id": agent_id},
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
