"""Card mutation service: the only place a card's fields are written.

``update_card`` and ``create_card`` persist the change first, then classify the
column transition, purge stale ledger entries, run the matched automations and
publish the final card state. Automation failures never fail the mutation;
persistence errors do.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import (
    CardNotFoundError,
    ColumnNotFoundError,
    ColumnPipelineMismatchError,
    DuplicateOpenCardError,
    PipelineNotFoundError,
)
from backend.app.models.card import PipelineCard
from backend.app.models.pipeline import Pipeline, PipelineColumn
from backend.app.services.automation_runner import AutomationRun, process_transition
from backend.app.services.engine_services import EngineServices
from backend.app.services.transitions import NOT_PROVIDED, Transition, apply_purge, classify_transition

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "column_id",
    "pipeline_id",
    "contact_id",
    "conversation_id",
    "description",
    "value",
    "status",
    "tags",
    "responsible_user_id",
)

NULLABLE_FIELDS = ("contact_id", "conversation_id", "description", "responsible_user_id")


@dataclass
class CardMutationResult:
    card: PipelineCard
    transition: Transition
    runs: list[AutomationRun] = field(default_factory=list)


def get_card(db: Session, card_id: int, workspace_id: Optional[int] = None) -> PipelineCard:
    query = db.query(PipelineCard).filter(PipelineCard.id == card_id)
    if workspace_id is not None:
        query = query.join(Pipeline, Pipeline.id == PipelineCard.pipeline_id).filter(Pipeline.workspace_id == workspace_id)
    card = query.first()
    if card is None:
        raise CardNotFoundError(f"Card {card_id} not found")
    return card


def _get_pipeline(db: Session, pipeline_id: int, workspace_id: Optional[int]) -> Pipeline:
    query = db.query(Pipeline).filter(Pipeline.id == pipeline_id)
    if workspace_id is not None:
        query = query.filter(Pipeline.workspace_id == workspace_id)
    pipeline = query.first()
    if pipeline is None:
        raise PipelineNotFoundError(f"Pipeline {pipeline_id} not found")
    return pipeline


def _target_column(
    db: Session,
    column_id: Optional[int],
    pipeline_id: Optional[int],
    workspace_id: Optional[int] = None,
) -> PipelineColumn:
    if column_id is None:
        raise ColumnNotFoundError("A card must belong to a column")
    column = db.get(PipelineColumn, column_id)
    if column is None or (workspace_id is not None and column.pipeline.workspace_id != workspace_id):
        raise ColumnNotFoundError(f"Column {column_id} not found")
    if pipeline_id is not None and column.pipeline_id != pipeline_id:
        raise ColumnPipelineMismatchError(f"Column {column_id} does not belong to pipeline {pipeline_id}")
    return column


def _after_transition(
    db: Session,
    card: PipelineCard,
    transition: Transition,
    services: EngineServices,
    move_depth: int,
) -> list[AutomationRun]:
    runs = []
    if transition.column_changed:
        apply_purge(db, transition)
        logger.info(
            "Card %s %s: column %s -> %s",
            card.id,
            transition.kind.value,
            transition.previous_column_id,
            transition.new_column_id,
        )
        runs = process_transition(db, card, transition, services, move_depth=move_depth)
        db.refresh(card)
        services.broadcaster.card_moved(card)
    return runs


def update_card(
    db: Session,
    card_id: int,
    changes: dict,
    services: EngineServices,
    workspace_id: Optional[int] = None,
    move_depth: int = 0,
) -> CardMutationResult:
    """Apply ``changes`` (only keys present are written) and run column automations."""
    card = get_card(db, card_id, workspace_id)
    transition = classify_transition(card.id, card.column_id, changes.get("column_id", NOT_PROVIDED))

    if transition.column_changed:
        column = _target_column(db, changes["column_id"], changes.get("pipeline_id"), workspace_id)
        changes = {**changes, "pipeline_id": column.pipeline_id}
    elif "pipeline_id" in changes and changes["pipeline_id"] != card.pipeline_id:
        _target_column(db, card.column_id, changes["pipeline_id"], workspace_id)

    for name in UPDATABLE_FIELDS:
        if name in changes and (changes[name] is not None or name in NULLABLE_FIELDS):
            setattr(card, name, changes[name])
    if transition.column_changed:
        card.moved_to_column_at = services.clock()
    db.commit()
    db.refresh(card)

    runs = _after_transition(db, card, transition, services, move_depth)
    return CardMutationResult(card=card, transition=transition, runs=runs)


def create_card(
    db: Session,
    data: dict,
    services: EngineServices,
    workspace_id: Optional[int] = None,
) -> CardMutationResult:
    pipeline = _get_pipeline(db, data["pipeline_id"], workspace_id)
    _target_column(db, data["column_id"], pipeline.id)

    contact_id = data.get("contact_id")
    if contact_id is not None:
        existing = (
            db.query(PipelineCard)
            .filter(
                PipelineCard.pipeline_id == pipeline.id,
                PipelineCard.contact_id == contact_id,
                PipelineCard.status == "open",
            )
            .first()
        )
        if existing is not None:
            raise DuplicateOpenCardError(existing.id, contact_id, pipeline.id)

    now = services.clock()
    card = PipelineCard(
        **{name: data[name] for name in UPDATABLE_FIELDS if name in data and data[name] is not None},
        moved_to_column_at=now,
        created_at=now,
    )
    db.add(card)
    db.commit()
    db.refresh(card)

    transition = classify_transition(card.id, None, card.column_id)
    runs = _after_transition(db, card, transition, services, move_depth=0)
    return CardMutationResult(card=card, transition=transition, runs=runs)
