"""Periodic scan that fires time_in_column automations.

The scan is invoked by an external scheduler through ``POST /automations/check-time``.
Each card is checked against the time_in_column automations of its current
column; a batch runs once the card has dwelt there for at least the trigger's
threshold and the ledger has no record for the current stay.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.time import as_utc
from backend.app.models.card import PipelineCard
from backend.app.models.pipeline import Pipeline
from backend.app.services.automation_config import TriggerKind, threshold_minutes
from backend.app.services.automation_matcher import MatchedAutomation, match_automations
from backend.app.services.automation_runner import AutomationRun, dwell_anchor, run_automation
from backend.app.services.engine_services import EngineServices

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    checked_cards: int = 0
    executed_automations: int = 0
    errors: int = 0
    results: list[dict] = field(default_factory=list)


def dwell_minutes(card: PipelineCard, now: datetime) -> Optional[float]:
    anchor = dwell_anchor(card)
    if anchor is None:
        return None
    return (as_utc(now) - anchor).total_seconds() / 60


def _scan_card(
    db: Session,
    card: PipelineCard,
    matches: list[MatchedAutomation],
    services: EngineServices,
    now: datetime,
    report: ScanReport,
) -> None:
    column_id = card.column_id
    for matched in matches:
        required = threshold_minutes(matched.trigger.trigger_config)
        if required is None or required <= 0:
            logger.warning("Automation %s has no usable time threshold", matched.automation.id)
            continue
        dwelt = dwell_minutes(card, now)
        if dwelt is None or dwelt < required:
            continue

        anchor = dwell_anchor(card)
        metadata = {
            "time_in_column_minutes": round(dwelt, 2),
            "required_minutes": required,
            "moved_to_column_at": anchor.isoformat() if anchor else None,
        }
        run: AutomationRun = run_automation(db, card, matched, services, metadata=metadata)
        if run.ran:
            report.executed_automations += 1
            report.results.append(
                {
                    "card_id": card.id,
                    "automation_id": run.automation_id,
                    "automation_name": run.automation_name,
                    "status": run.status.value,
                    "time_in_column_minutes": metadata["time_in_column_minutes"],
                    "required_minutes": required,
                }
            )

        db.refresh(card)
        if card.column_id != column_id:
            # a move_to_column action relocated the card; the old column's timers no longer apply
            break


def scan_dwell_times(
    db: Session,
    services: EngineServices,
    now: Optional[datetime] = None,
    workspace_id: Optional[int] = None,
) -> ScanReport:
    now = now or services.clock()
    report = ScanReport()

    query = db.query(PipelineCard)
    if workspace_id is not None:
        query = query.join(Pipeline, Pipeline.id == PipelineCard.pipeline_id).filter(Pipeline.workspace_id == workspace_id)
    card_ids = [row.id for row in query.with_entities(PipelineCard.id).order_by(PipelineCard.updated_at.asc()).all()]

    matches_by_column: dict[int, list[MatchedAutomation]] = {}
    for card_id in card_ids:
        card = db.get(PipelineCard, card_id)
        if card is None:
            continue
        report.checked_cards += 1
        if card.column_id not in matches_by_column:
            matches_by_column[card.column_id] = match_automations(db, card.column_id, TriggerKind.TIME_IN_COLUMN)
        matches = matches_by_column[card.column_id]
        if not matches:
            continue
        try:
            _scan_card(db, card, matches, services, now, report)
        except Exception:
            db.rollback()
            report.errors += 1
            logger.exception("Dwell scan failed for card %s", card_id)

    logger.info(
        "Dwell scan: %s card(s) checked, %s automation(s) executed, %s error(s)",
        report.checked_cards,
        report.executed_automations,
        report.errors,
    )
    return report
