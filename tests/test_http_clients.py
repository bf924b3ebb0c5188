import json

import httpx
import pytest

from backend.app.core.errors import MessageDispatchError
from backend.app.models.card import PipelineCard
from backend.app.services.broadcast import BroadcastNotifier
from backend.app.services.message_sink import DispatchRequest, HttpMessageSink

SINK_URL = "http://sink.local/send-message"


def make_sink(handler):
    return HttpMessageSink(SINK_URL, timeout=1, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_sink_posts_payload_with_idempotency_key():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "message_id": "m-1"})

    result = make_sink(handler).send(
        DispatchRequest(conversation_id=5, idempotency_key="run-1-action-2", content="Olá!", connection_id=3)
    )
    assert result.message_id == "m-1"
    assert not result.duplicate
    assert seen == [
        {
            "conversation_id": 5,
            "content": "Olá!",
            "message_type": "text",
            "sender_type": "system",
            "clientMessageId": "run-1-action-2",
            "connection_id": 3,
        }
    ]


def test_sink_includes_file_fields_for_media():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"message": {"id": 9}})

    result = make_sink(handler).send(
        DispatchRequest(
            conversation_id=5,
            idempotency_key="k",
            message_type="audio",
            file_url="http://cdn/a.mp3",
            file_name="a.mp3",
        )
    )
    assert result.message_id == "9"
    assert seen[0]["file_url"] == "http://cdn/a.mp3"
    assert seen[0]["file_name"] == "a.mp3"


def test_sink_duplicate_status_counts_as_success():
    sink = make_sink(lambda request: httpx.Response(200, json={"status": "duplicate", "message_id": "m-1"}))
    result = sink.send(DispatchRequest(conversation_id=5, idempotency_key="k", content="x"))
    assert result.duplicate


def test_sink_accepts_empty_body():
    sink = make_sink(lambda request: httpx.Response(204))
    result = sink.send(DispatchRequest(conversation_id=5, idempotency_key="k", content="x"))
    assert result.message_id is None


def test_sink_accepts_plain_text_message_field():
    sink = make_sink(lambda request: httpx.Response(200, json={"success": True, "message": "Mensagem enviada"}))
    result = sink.send(DispatchRequest(conversation_id=5, idempotency_key="k", content="x"))
    assert result.message_id is None
    assert result.status == "sent"
    assert not result.duplicate


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"error": "instance offline", "details": "connection closed"}),
    ],
)
def test_sink_errors_raise_dispatch_error(response):
    sink = make_sink(lambda request: response)
    with pytest.raises(MessageDispatchError):
        sink.send(DispatchRequest(conversation_id=5, idempotency_key="k", content="x"))


def test_sink_transport_failure_raises_dispatch_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MessageDispatchError):
        make_sink(handler).send(DispatchRequest(conversation_id=5, idempotency_key="k", content="x"))


def test_broadcast_card_moved_event():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    notifier = BroadcastNotifier("http://realtime.local", client=httpx.Client(transport=httpx.MockTransport(handler)))
    card = PipelineCard(id=12, pipeline_id=3, column_id=8)
    assert notifier.card_moved(card) is True
    assert seen == [{"channel": "pipeline-3", "event": "pipeline-card-moved", "payload": {"cardId": 12, "newColumnId": 8}}]


def test_broadcast_agent_updated_event():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200)

    notifier = BroadcastNotifier("http://realtime.local", client=httpx.Client(transport=httpx.MockTransport(handler)))
    notifier.agent_updated(3, 44, True, "agent-7")
    assert seen[0]["event"] == "conversation-agent-updated"
    assert seen[0]["payload"] == {"conversationId": 44, "agente_ativo": True, "agent_active_id": "agent-7"}


def test_broadcast_failures_are_swallowed():
    notifier = BroadcastNotifier(
        "http://realtime.local",
        client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503))),
    )
    assert notifier.publish("pipeline-1", "pipeline-card-moved", {}) is False


def test_broadcast_without_url_is_disabled():
    assert BroadcastNotifier("").publish("pipeline-1", "pipeline-card-moved", {}) is False
