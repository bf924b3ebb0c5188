"""Run matched automations for a card: ledger claim, action batch, ledger record."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.time import as_utc
from backend.app.models.card import PipelineCard
from backend.app.services import execution_ledger
from backend.app.services.actions import BatchResult, execute_actions
from backend.app.services.automation_matcher import MatchedAutomation, automations_for_transition
from backend.app.services.engine_services import EngineServices
from backend.app.services.transitions import Transition

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    EXECUTED = "executed"
    PARTIAL_FAILURE = "partial_failure"
    ALREADY_EXECUTED = "already_executed"
    IN_PROGRESS = "in_progress"


@dataclass
class AutomationRun:
    automation_id: int
    automation_name: str
    trigger_kind: str
    column_id: int
    status: RunStatus
    batch: Optional[BatchResult] = None

    @property
    def ran(self) -> bool:
        return self.batch is not None


def dwell_anchor(card: PipelineCard) -> Optional[datetime]:
    """Start of the card's current stay in its column."""
    return as_utc(card.moved_to_column_at) or as_utc(card.created_at)


def run_automation(
    db: Session,
    card: PipelineCard,
    matched: MatchedAutomation,
    services: EngineServices,
    metadata: Optional[dict] = None,
    move_depth: int = 0,
) -> AutomationRun:
    automation = matched.automation
    kind = matched.trigger_kind.value
    run = AutomationRun(automation.id, automation.name, kind, matched.column_id, RunStatus.ALREADY_EXECUTED)
    since = dwell_anchor(card)

    if execution_ledger.has_executed(db, automation.id, card.id, matched.column_id, since, execution_type=kind):
        logger.info("Automation %s already executed for card %s in column %s", automation.id, card.id, matched.column_id)
        return run

    claim = execution_ledger.claim(db, automation.id, card.id, matched.column_id, since, kind, now=services.clock())
    if claim is None:
        logger.info("Automation %s for card %s is claimed by another run", automation.id, card.id)
        run.status = RunStatus.IN_PROGRESS
        return run

    # stable across retries within one stay
    stay = since.strftime("%Y%m%d%H%M%S%f") if since is not None else f"entry{claim.entry_id}"
    invocation_key = f"automation-{automation.id}-card-{card.id}-column-{matched.column_id}-{kind}-{stay}"
    logger.info("Executing automation %s (%s) for card %s on %s", automation.id, automation.name, card.id, kind)
    run.batch = execute_actions(db, card, automation, matched.actions, services, invocation_key, move_depth=move_depth)

    if run.batch.clean:
        entry_metadata = dict(metadata or {})
        entry_metadata["actions_executed"] = len(run.batch.results)
        execution_ledger.record(db, claim, entry_metadata, now=services.clock())
        run.status = RunStatus.EXECUTED
    else:
        execution_ledger.release(db, claim)
        run.status = RunStatus.PARTIAL_FAILURE
        logger.warning(
            "Automation %s for card %s had %s failed action(s); not recorded",
            automation.id,
            card.id,
            run.batch.failed_count,
        )
    return run


def process_transition(
    db: Session,
    card: PipelineCard,
    transition: Transition,
    services: EngineServices,
    move_depth: int = 0,
) -> list[AutomationRun]:
    runs = []
    for matched in automations_for_transition(db, transition):
        metadata = {
            "previous_column_id": transition.previous_column_id,
            "new_column_id": transition.new_column_id,
        }
        runs.append(run_automation(db, card, matched, services, metadata=metadata, move_depth=move_depth))
    return runs
