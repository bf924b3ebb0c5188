"""Action executor for column automations.

Every action type is a handler class with an ``execute(ctx)`` method returning
an ActionResult. ``execute_actions`` runs one automation's batch in order and
isolates failures: an exception inside one action is logged, its session work
rolled back, and the next action still runs.

Result statuses:
    succeeded  the side effect happened
    skipped    nothing to do (missing optional config, agent already off...)
    failed     the action could not do its job; the batch will not be recorded
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.errors import AutomationError
from backend.app.models.automation import AutomationAction, ColumnAutomation
from backend.app.models.card import PipelineCard
from backend.app.models.contact import ContactTag
from backend.app.models.funnel import QuickFunnel
from backend.app.services.automation_config import load_config, normalize_action_type
from backend.app.services.business_hours import is_within_business_hours
from backend.app.services.engine_services import EngineServices
from backend.app.services.entity_resolver import CardContext, resolve_connection, resolve_context
from backend.app.services.funnels import build_funnel_plan
from backend.app.services.message_sink import DispatchRequest

logger = logging.getLogger(__name__)


class ActionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ActionResult:
    action_id: Optional[int]
    action_type: str
    status: ActionStatus
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status != ActionStatus.FAILED


@dataclass
class BatchResult:
    automation_id: int
    results: list[ActionResult] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.ok)


@dataclass
class ActionContext:
    db: Session
    card: PipelineCard
    automation: ColumnAutomation
    action: AutomationAction
    action_type: str
    config: dict
    services: EngineServices
    invocation_key: str
    move_depth: int = 0
    _entities: Optional[CardContext] = None

    @property
    def entities(self) -> CardContext:
        if self._entities is None:
            self._entities = resolve_context(self.db, self.card)
        return self._entities

    def _result(self, status: ActionStatus, detail: str) -> ActionResult:
        return ActionResult(self.action.id, self.action_type, status, detail)

    def succeeded(self, detail: str = "") -> ActionResult:
        logger.info("[%s] card %s: %s", self.action_type, self.card.id, detail or "done")
        return self._result(ActionStatus.SUCCEEDED, detail)

    def skipped(self, detail: str) -> ActionResult:
        logger.warning("[%s] card %s skipped: %s", self.action_type, self.card.id, detail)
        return self._result(ActionStatus.SKIPPED, detail)

    def failed(self, detail: str) -> ActionResult:
        logger.error("[%s] card %s failed: %s", self.action_type, self.card.id, detail)
        return self._result(ActionStatus.FAILED, detail)

    def outside_business_hours(self) -> bool:
        if self.automation.ignore_business_hours:
            return False
        return not is_within_business_hours(
            self.db,
            self.entities.workspace_id,
            now=self.services.clock(),
            tz_name=self.services.settings.business_hours_timezone,
        )


class ActionHandler:
    action_type = ""

    def execute(self, ctx: ActionContext) -> ActionResult:
        raise NotImplementedError


class SendMessageAction(ActionHandler):
    action_type = "send_message"

    def execute(self, ctx):
        content = ctx.config.get("message") or ctx.config.get("content") or ""
        if not content:
            return ctx.failed("no message content configured")
        conversation = ctx.entities.conversation
        if conversation is None:
            return ctx.failed("card has no resolvable conversation")
        if ctx.outside_business_hours():
            return ctx.failed("outside business hours, message withheld")

        connection = resolve_connection(ctx.db, ctx.entities, ctx.config)
        result = ctx.services.message_sink.send(
            DispatchRequest(
                conversation_id=conversation.id,
                content=content,
                message_type="text",
                idempotency_key=f"{ctx.invocation_key}-action-{ctx.action.id}",
                connection_id=connection.id,
            )
        )
        return ctx.succeeded(f"message {result.message_id or '?'} dispatched to conversation {conversation.id}")


class SendFunnelAction(ActionHandler):
    action_type = "send_funnel"

    def execute(self, ctx):
        funnel_id = ctx.config.get("funnel_id")
        if not funnel_id:
            return ctx.failed("no funnel_id configured")
        funnel = ctx.db.get(QuickFunnel, int(funnel_id))
        if funnel is None:
            return ctx.failed(f"funnel {funnel_id} not found")
        if not funnel.steps:
            return ctx.failed(f"funnel {funnel_id} has no steps")
        conversation = ctx.entities.conversation
        if conversation is None:
            return ctx.failed("card has no resolvable conversation")
        if ctx.outside_business_hours():
            return ctx.failed("outside business hours, funnel withheld")

        connection = resolve_connection(ctx.db, ctx.entities, ctx.config)
        plan = build_funnel_plan(
            ctx.db,
            funnel,
            conversation.id,
            f"{ctx.invocation_key}-action-{ctx.action.id}",
            connection_id=connection.id,
        )
        if not plan.dispatches:
            return ctx.failed(f"none of the {len(funnel.steps)} funnel steps could be resolved")
        ctx.services.funnel_player.play(plan)
        return ctx.succeeded(f"funnel {funnel.title!r} scheduled with {len(plan.dispatches)} step(s)")


class AddAgentAction(ActionHandler):
    action_type = "add_agent"

    def execute(self, ctx):
        conversation = ctx.entities.conversation
        if conversation is None:
            return ctx.failed("card has no resolvable conversation")

        agent_id = ctx.config.get("agent_id") or conversation.agent_active_id
        if not agent_id and conversation.queue is not None:
            agent_id = conversation.queue.ai_agent_id
        if not agent_id:
            return ctx.skipped(f"no agent configured or inferable for conversation {conversation.id}")

        conversation.agente_ativo = True
        conversation.agent_active_id = str(agent_id)
        conversation.status = "open"
        ctx.db.commit()
        ctx.services.broadcaster.agent_updated(ctx.card.pipeline_id, conversation.id, True, str(agent_id))
        return ctx.succeeded(f"agent {agent_id} activated on conversation {conversation.id}")


def _truthy(value) -> bool:
    return value is True or (isinstance(value, str) and value.lower() == "true")


def _falsy(value) -> bool:
    return value is False or (isinstance(value, str) and value.lower() == "false")


class RemoveAgentAction(ActionHandler):
    action_type = "remove_agent"

    def execute(self, ctx):
        conversation = ctx.entities.conversation
        if conversation is None:
            return ctx.failed("card has no resolvable conversation")

        agent_id = ctx.config.get("agent_id")
        flag = ctx.config.get("remove_current")
        remove_current = _truthy(flag) or (not _falsy(flag) and not agent_id)

        if remove_current:
            if not conversation.agente_ativo:
                return ctx.skipped(f"conversation {conversation.id} has no active agent")
        elif agent_id:
            if not conversation.agente_ativo or conversation.agent_active_id != str(agent_id):
                return ctx.skipped(f"agent {agent_id} is not the active agent of conversation {conversation.id}")
        else:
            return ctx.skipped("neither remove_current nor agent_id configured")

        removed = conversation.agent_active_id
        conversation.agente_ativo = False
        conversation.agent_active_id = None
        ctx.db.commit()
        ctx.services.broadcaster.agent_updated(ctx.card.pipeline_id, conversation.id, False, None)
        return ctx.succeeded(f"agent {removed} removed from conversation {conversation.id}")


class MoveToColumnAction(ActionHandler):
    action_type = "move_to_column"

    def execute(self, ctx):
        # Local import to avoid circular dependency: card mutation runs automations
        from backend.app.services.card_mutation import update_card

        target_column_id = ctx.config.get("target_column_id") or ctx.config.get("column_id")
        if not target_column_id:
            return ctx.skipped("no target column configured")
        if ctx.move_depth >= ctx.services.settings.max_move_depth:
            return ctx.failed(f"move chain deeper than {ctx.services.settings.max_move_depth}, stopping")

        changes = {"column_id": int(target_column_id)}
        target_pipeline_id = ctx.config.get("target_pipeline_id") or ctx.config.get("pipeline_id")
        if target_pipeline_id:
            changes["pipeline_id"] = int(target_pipeline_id)
        update_card(ctx.db, ctx.card.id, changes, ctx.services, move_depth=ctx.move_depth + 1)
        return ctx.succeeded(f"moved to column {target_column_id}")


class AddTagAction(ActionHandler):
    action_type = "add_tag"

    def execute(self, ctx):
        tag_id = ctx.config.get("tag_id")
        contact_id = ctx.card.contact_id
        if not tag_id or contact_id is None:
            return ctx.skipped("tag_id or card contact missing")

        exists = (
            ctx.db.query(ContactTag.id)
            .filter(ContactTag.contact_id == contact_id, ContactTag.tag_id == int(tag_id))
            .first()
        )
        if exists:
            return ctx.succeeded(f"contact {contact_id} already tagged {tag_id}")
        ctx.db.add(ContactTag(contact_id=contact_id, tag_id=int(tag_id)))
        try:
            ctx.db.commit()
        except IntegrityError:
            ctx.db.rollback()
            return ctx.succeeded(f"contact {contact_id} tagged {tag_id} concurrently")
        return ctx.succeeded(f"tag {tag_id} added to contact {contact_id}")


class RemoveTagAction(ActionHandler):
    action_type = "remove_tag"

    def execute(self, ctx):
        tag_id = ctx.config.get("tag_id")
        contact_id = ctx.card.contact_id
        if not tag_id or contact_id is None:
            return ctx.skipped("tag_id or card contact missing")
        ctx.db.query(ContactTag).filter(
            ContactTag.contact_id == contact_id, ContactTag.tag_id == int(tag_id)
        ).delete(synchronize_session=False)
        ctx.db.commit()
        return ctx.succeeded(f"tag {tag_id} removed from contact {contact_id}")


class AssignResponsibleAction(ActionHandler):
    action_type = "assign_responsible"

    def execute(self, ctx):
        user_id = ctx.config.get("user_id")
        if not user_id:
            return ctx.skipped("no user_id configured")
        ctx.card.responsible_user_id = int(user_id)
        ctx.db.commit()
        return ctx.succeeded(f"user {user_id} assigned as responsible")


ACTION_HANDLERS: dict[str, ActionHandler] = {
    handler.action_type: handler
    for handler in (
        SendMessageAction(),
        SendFunnelAction(),
        AddAgentAction(),
        RemoveAgentAction(),
        MoveToColumnAction(),
        AddTagAction(),
        RemoveTagAction(),
        AssignResponsibleAction(),
    )
}


def execute_action(ctx: ActionContext) -> ActionResult:
    handler = ACTION_HANDLERS.get(ctx.action_type)
    if handler is None:
        return ctx.failed(f"unknown action type {ctx.action.action_type!r}")
    try:
        return handler.execute(ctx)
    except AutomationError as exc:
        ctx.db.rollback()
        return ctx.failed(str(exc))
    except Exception as exc:
        ctx.db.rollback()
        logger.exception("[%s] card %s raised", ctx.action_type, ctx.card.id)
        return ctx._result(ActionStatus.FAILED, f"{type(exc).__name__}: {exc}")


def execute_actions(
    db: Session,
    card: PipelineCard,
    automation: ColumnAutomation,
    actions: list[AutomationAction],
    services: EngineServices,
    invocation_key: str,
    move_depth: int = 0,
) -> BatchResult:
    """Run ``actions`` in order; one result per action, nothing raised."""
    batch = BatchResult(automation_id=automation.id)
    entities = None
    for action in actions:
        ctx = ActionContext(
            db=db,
            card=card,
            automation=automation,
            action=action,
            action_type=normalize_action_type(action.action_type),
            config=load_config(action.action_config),
            services=services,
            invocation_key=invocation_key,
            move_depth=move_depth,
            _entities=entities,
        )
        batch.results.append(execute_action(ctx))
        entities = ctx._entities
    logger.info(
        "Automation %s (%s) on card %s: %s action(s), %s failed",
        automation.id,
        automation.name,
        card.id,
        len(batch.results),
        batch.failed_count,
    )
    return batch
