from concurrent.futures import Future
from types import SimpleNamespace

import pytest

from backend.app.core.errors import MessageDispatchError
from backend.app.core.settings import get_settings
from backend.app.db.session import SessionLocal
from backend.app.main import app
from backend.app.models.automation import AutomationAction, AutomationTrigger, ColumnAutomation
from backend.app.models.card import PipelineCard
from backend.app.models.contact import Contact, Tag
from backend.app.models.conversation import Connection, Conversation
from backend.app.models.pipeline import Pipeline, PipelineColumn
from backend.app.services.broadcast import BroadcastNotifier
from backend.app.services.engine_services import EngineServices, get_engine_services
from backend.app.services.funnels import FunnelPlayer
from backend.app.services.message_sink import DispatchResult

WORKSPACE_ID = 1
WORKSPACE_HEADERS = {"x-workspace-id": str(WORKSPACE_ID)}


class FakeSink:
    """Records every dispatch; contents listed in ``fail_contents`` raise."""

    def __init__(self):
        self.requests = []
        self.fail_contents = set()

    def send(self, request):
        self.requests.append(request)
        if request.content in self.fail_contents:
            raise MessageDispatchError("sink unavailable")
        return DispatchResult(message_id=str(len(self.requests)))


class RecordingBroadcaster(BroadcastNotifier):
    def __init__(self):
        super().__init__(url="")
        self.events = []

    def publish(self, channel, event, payload):
        self.events.append((channel, event, payload))
        return True


class InlineExecutor:
    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def engine_services(sink, broadcaster, sleeps):
    return EngineServices(
        message_sink=sink,
        broadcaster=broadcaster,
        funnel_player=FunnelPlayer(sink, executor=InlineExecutor(), sleep=sleeps.append),
        settings=get_settings(),
    )


@pytest.fixture
def services_override(engine_services):
    app.dependency_overrides[get_engine_services] = lambda: engine_services
    yield engine_services
    app.dependency_overrides.pop(get_engine_services, None)


@pytest.fixture
def board():
    """A sales pipeline with four columns and a reachable contact."""
    db = SessionLocal()
    try:
        pipeline = Pipeline(workspace_id=WORKSPACE_ID, name="Vendas")
        db.add(pipeline)
        db.flush()
        columns = {}
        for position, name in enumerate(["Novo", "Qualificado", "Proposta", "Fechado"]):
            column = PipelineColumn(pipeline_id=pipeline.id, name=name, order_position=position)
            db.add(column)
            db.flush()
            columns[name] = column.id

        connection = Connection(workspace_id=WORKSPACE_ID, instance_name="principal", status="connected")
        contact = Contact(workspace_id=WORKSPACE_ID, name="Maria Souza", phone="5511999990000")
        tag = Tag(workspace_id=WORKSPACE_ID, name="qualificado")
        db.add_all([connection, contact, tag])
        db.flush()
        conversation = Conversation(workspace_id=WORKSPACE_ID, contact_id=contact.id, connection_id=connection.id)
        db.add(conversation)
        db.commit()
        return SimpleNamespace(
            pipeline_id=pipeline.id,
            columns=columns,
            connection_id=connection.id,
            contact_id=contact.id,
            conversation_id=conversation.id,
            tag_id=tag.id,
        )
    finally:
        db.close()


@pytest.fixture
def make_automation():
    def _make(column_id, trigger_type, actions, trigger_config=None, name="Automation", **fields):
        db = SessionLocal()
        try:
            automation = ColumnAutomation(column_id=column_id, workspace_id=WORKSPACE_ID, name=name, **fields)
            automation.triggers = [AutomationTrigger(trigger_type=trigger_type, trigger_config=trigger_config)]
            automation.actions = [
                AutomationAction(action_type=action_type, action_order=index, action_config=config)
                for index, (action_type, config) in enumerate(actions)
            ]
            db.add(automation)
            db.commit()
            return automation.id
        finally:
            db.close()

    return _make


@pytest.fixture
def make_card(board):
    def _make(column_name="Novo", **fields):
        db = SessionLocal()
        try:
            fields.setdefault("contact_id", board.contact_id)
            card = PipelineCard(pipeline_id=board.pipeline_id, column_id=board.columns[column_name], **fields)
            db.add(card)
            db.commit()
            return card.id
        finally:
            db.close()

    return _make
