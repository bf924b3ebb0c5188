import pytest

from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.funnel import FunnelStep, QuickAudio, QuickDocument, QuickFunnel, QuickMedia, QuickMessage
from backend.app.services.funnels import FunnelPlayer, build_funnel_plan
from backend.app.services.message_sink import DispatchResult


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def seed_funnel(db):
    message = QuickMessage(workspace_id=1, title="Boas-vindas", content="Oi! Tudo bem?")
    audio = QuickAudio(workspace_id=1, title="Apresentação", file_url="http://cdn/apresentacao.ogg")
    video = QuickMedia(workspace_id=1, title="Demo", file_url="http://cdn/demo.mp4")
    document = QuickDocument(workspace_id=1, title="Proposta", file_url="http://cdn/proposta.pdf", file_name="proposta.pdf")
    db.add_all([message, audio, video, document])
    db.flush()
    funnel = QuickFunnel(workspace_id=1, title="Onboarding")
    funnel.steps = [
        FunnelStep(step_order=3, step_type="documentos", item_id=document.id, delay_seconds=0),
        FunnelStep(step_order=1, step_type="mensagens", item_id=message.id, delay_seconds=5),
        FunnelStep(step_order=2, step_type="audios", item_id=audio.id, delay_seconds=10),
        FunnelStep(step_order=4, step_type="midias", item_id=video.id, delay_seconds=30),
    ]
    db.add(funnel)
    db.commit()
    return funnel


def test_plan_resolves_steps_in_order_with_keys():
    db = SessionLocal()
    try:
        funnel = seed_funnel(db)
        plan = build_funnel_plan(db, funnel, conversation_id=7, invocation_key="run-1-action-3", connection_id=2)
        assert plan.unresolved_steps == 0
        assert [d.request.message_type for d in plan.dispatches] == ["text", "audio", "document", "video"]
        assert [d.request.idempotency_key for d in plan.dispatches] == [
            "run-1-action-3-step-1",
            "run-1-action-3-step-2",
            "run-1-action-3-step-3",
            "run-1-action-3-step-4",
        ]
        assert plan.dispatches[0].request.content == "Oi! Tudo bem?"
        assert plan.dispatches[1].request.file_name == "Apresentação"
        assert plan.dispatches[2].request.file_name == "proposta.pdf"
        assert all(d.request.connection_id == 2 for d in plan.dispatches)
    finally:
        db.close()


def test_plan_skips_missing_templates():
    db = SessionLocal()
    try:
        funnel = QuickFunnel(workspace_id=1, title="Quebrado")
        funnel.steps = [
            FunnelStep(step_order=1, step_type="message", item_id=999),
            FunnelStep(step_order=2, step_type="sticker", item_id=1),
        ]
        db.add(funnel)
        db.commit()
        plan = build_funnel_plan(db, funnel, conversation_id=7, invocation_key="k")
        assert plan.dispatches == []
        assert plan.unresolved_steps == 2
    finally:
        db.close()


def test_player_sends_in_order_and_sleeps_between_steps(sink, sleeps):
    db = SessionLocal()
    try:
        plan = build_funnel_plan(db, seed_funnel(db), conversation_id=7, invocation_key="k")
    finally:
        db.close()

    outcome = FunnelPlayer(sink, sleep=sleeps.append).run(plan)
    assert outcome.sent == 4
    assert outcome.failed == 0
    assert [r.idempotency_key for r in sink.requests] == ["k-step-1", "k-step-2", "k-step-3", "k-step-4"]
    # no sleep after the last step, none for zero delays
    assert sleeps == [5, 10]


def test_player_continues_after_failed_step(sink, sleeps):
    db = SessionLocal()
    try:
        plan = build_funnel_plan(db, seed_funnel(db), conversation_id=7, invocation_key="k")
    finally:
        db.close()

    sink.fail_contents.add("Oi! Tudo bem?")
    outcome = FunnelPlayer(sink, sleep=sleeps.append).run(plan)
    assert outcome.sent == 3
    assert outcome.failed == 1
    assert len(sink.requests) == 4


def test_play_runs_on_executor(sink, sleeps):
    db = SessionLocal()
    try:
        plan = build_funnel_plan(db, seed_funnel(db), conversation_id=7, invocation_key="k")
    finally:
        db.close()

    player = FunnelPlayer(sink, sleep=sleeps.append)
    try:
        outcome = player.play(plan).result(timeout=5)
    finally:
        player.shutdown()
    assert outcome.sent == 4


def test_player_survives_unexpected_sink_errors(sleeps):
    db = SessionLocal()
    try:
        plan = build_funnel_plan(db, seed_funnel(db), conversation_id=7, invocation_key="k")
    finally:
        db.close()

    class BrokenFirstStepSink:
        def __init__(self):
            self.keys = []

        def send(self, request):
            self.keys.append(request.idempotency_key)
            if len(self.keys) == 1:
                raise AttributeError("'str' object has no attribute 'get'")
            return DispatchResult(message_id=str(len(self.keys)))

    broken = BrokenFirstStepSink()
    player = FunnelPlayer(broken, sleep=sleeps.append)
    try:
        outcome = player.play(plan).result(timeout=5)
    finally:
        player.shutdown()
    assert outcome.sent == 3
    assert outcome.failed == 1
    assert broken.keys == ["k-step-1", "k-step-2", "k-step-3", "k-step-4"]
