"""Funnel playback: resolve every step up front, then dispatch with delays.

Playback runs on a worker pool so the inter-step sleeps never hold up the
request or scan that triggered it. Workers only talk to the message sink.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import MessageDispatchError
from backend.app.models.funnel import FunnelStep, QuickAudio, QuickDocument, QuickFunnel, QuickMedia, QuickMessage
from backend.app.services.message_sink import DispatchRequest, MessageSink

logger = logging.getLogger(__name__)

STEP_TYPES = {
    "message": "message",
    "messages": "message",
    "mensagens": "message",
    "audio": "audio",
    "audios": "audio",
    "media": "media",
    "midias": "media",
    "document": "document",
    "documents": "document",
    "documentos": "document",
}

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi")


@dataclass
class FunnelDispatch:
    position: int
    request: DispatchRequest
    delay_seconds: int = 0


@dataclass
class FunnelPlan:
    funnel_id: int
    title: str
    dispatches: list[FunnelDispatch] = field(default_factory=list)
    unresolved_steps: int = 0


@dataclass
class PlaybackOutcome:
    funnel_id: int
    sent: int = 0
    failed: int = 0


def _media_type(media: QuickMedia) -> str:
    if media.file_type and media.file_type.startswith("video/"):
        return "video"
    if media.file_url and media.file_url.lower().endswith(VIDEO_EXTENSIONS):
        return "video"
    return "image"


def _step_request(db: Session, step: FunnelStep, conversation_id: int, key: str, connection_id: Optional[int]):
    step_type = STEP_TYPES.get((step.step_type or "").strip().lower())
    base = {"conversation_id": conversation_id, "idempotency_key": key, "connection_id": connection_id}

    if step_type == "message":
        message = db.get(QuickMessage, step.item_id)
        if message is None:
            return None
        return DispatchRequest(content=message.content, message_type="text", **base)
    if step_type == "audio":
        audio = db.get(QuickAudio, step.item_id)
        if audio is None:
            return None
        return DispatchRequest(
            message_type="audio",
            file_url=audio.file_url,
            file_name=audio.file_name or audio.title or "audio.mp3",
            **base,
        )
    if step_type == "media":
        media = db.get(QuickMedia, step.item_id)
        if media is None:
            return None
        media_type = _media_type(media)
        default_name = "media.mp4" if media_type == "video" else "media.jpg"
        return DispatchRequest(
            content=media.title or "",
            message_type=media_type,
            file_url=media.file_url,
            file_name=media.file_name or media.title or default_name,
            **base,
        )
    if step_type == "document":
        document = db.get(QuickDocument, step.item_id)
        if document is None:
            return None
        return DispatchRequest(
            content=document.title or "",
            message_type="document",
            file_url=document.file_url,
            file_name=document.file_name or document.title or "document.pdf",
            **base,
        )
    logger.error("Unknown funnel step type %r (step %s)", step.step_type, step.id)
    return None


def build_funnel_plan(
    db: Session,
    funnel: QuickFunnel,
    conversation_id: int,
    invocation_key: str,
    connection_id: Optional[int] = None,
) -> FunnelPlan:
    plan = FunnelPlan(funnel_id=funnel.id, title=funnel.title)
    steps = sorted(funnel.steps, key=lambda s: (s.step_order or 0, s.id))
    for position, step in enumerate(steps, start=1):
        request = _step_request(db, step, conversation_id, f"{invocation_key}-step-{position}", connection_id)
        if request is None:
            logger.error("Funnel %s step %s could not be resolved, skipping", funnel.id, position)
            plan.unresolved_steps += 1
            continue
        plan.dispatches.append(FunnelDispatch(position=position, request=request, delay_seconds=step.delay_seconds or 0))
    return plan


class FunnelPlayer:
    def __init__(self, sink: MessageSink, executor=None, sleep: Callable[[float], None] = time.sleep):
        self.sink = sink
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="funnel")
        self._sleep = sleep

    def play(self, plan: FunnelPlan) -> Future:
        return self._executor.submit(self.run, plan)

    def run(self, plan: FunnelPlan) -> PlaybackOutcome:
        outcome = PlaybackOutcome(funnel_id=plan.funnel_id)
        total = len(plan.dispatches)
        for index, dispatch in enumerate(plan.dispatches):
            try:
                self.sink.send(dispatch.request)
                outcome.sent += 1
                logger.info("Funnel %s step %s/%s sent", plan.funnel_id, dispatch.position, total)
            except MessageDispatchError as exc:
                outcome.failed += 1
                logger.error("Funnel %s step %s failed: %s", plan.funnel_id, dispatch.position, exc)
            except Exception:
                outcome.failed += 1
                logger.exception("Funnel %s step %s raised unexpectedly", plan.funnel_id, dispatch.position)
            if dispatch.delay_seconds > 0 and index < total - 1:
                self._sleep(dispatch.delay_seconds)
        logger.info("Funnel %s playback finished: %s sent, %s failed", plan.funnel_id, outcome.sent, outcome.failed)
        return outcome

    def shutdown(self, wait: bool = True) -> None:
        shutdown = getattr(self._executor, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=wait)
