"""Find the active automations of a column that listen for a trigger kind."""

from dataclasses import dataclass

from sqlalchemy.orm import Session, selectinload

from backend.app.models.automation import AutomationAction, AutomationTrigger, ColumnAutomation
from backend.app.services.automation_config import TriggerKind, normalize_trigger_type
from backend.app.services.transitions import Transition


@dataclass
class MatchedAutomation:
    automation: ColumnAutomation
    trigger: AutomationTrigger
    actions: list[AutomationAction]
    trigger_kind: TriggerKind
    column_id: int


def match_automations(db: Session, column_id: int, trigger_kind: TriggerKind) -> list[MatchedAutomation]:
    automations = (
        db.query(ColumnAutomation)
        .options(selectinload(ColumnAutomation.triggers), selectinload(ColumnAutomation.actions))
        .filter(ColumnAutomation.column_id == column_id, ColumnAutomation.is_active.is_(True))
        .order_by(ColumnAutomation.created_at.asc(), ColumnAutomation.id.asc())
        .all()
    )
    matched = []
    for automation in automations:
        trigger = next((t for t in automation.triggers if normalize_trigger_type(t.trigger_type) is trigger_kind), None)
        if trigger is None:
            continue
        actions = sorted(automation.actions, key=lambda a: (a.action_order or 0, a.id))
        matched.append(MatchedAutomation(automation, trigger, actions, trigger_kind, column_id))
    return matched


def automations_for_transition(db: Session, transition: Transition) -> list[MatchedAutomation]:
    """Left-column automations of the old column first, then entered-column ones of the new column."""
    matched = []
    for trigger_kind, column_id in transition.trigger_plan():
        matched.extend(match_automations(db, column_id, trigger_kind))
    return matched
