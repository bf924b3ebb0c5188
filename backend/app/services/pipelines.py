"""Pipeline and column administration."""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.core.errors import ColumnNotEmptyError, ColumnNotFoundError, PipelineNotFoundError
from backend.app.models.card import PipelineCard
from backend.app.models.pipeline import Pipeline, PipelineColumn

logger = logging.getLogger(__name__)


def get_pipeline(db: Session, pipeline_id: int, workspace_id: int) -> Pipeline:
    pipeline = db.query(Pipeline).filter(Pipeline.id == pipeline_id, Pipeline.workspace_id == workspace_id).first()
    if pipeline is None:
        raise PipelineNotFoundError(f"Pipeline {pipeline_id} not found")
    return pipeline


def get_column(db: Session, column_id: int, workspace_id: int) -> PipelineColumn:
    column = (
        db.query(PipelineColumn)
        .join(Pipeline, Pipeline.id == PipelineColumn.pipeline_id)
        .filter(PipelineColumn.id == column_id, Pipeline.workspace_id == workspace_id)
        .first()
    )
    if column is None:
        raise ColumnNotFoundError(f"Column {column_id} not found")
    return column


def add_column(
    db: Session,
    pipeline: Pipeline,
    name: str,
    color: str = "#808080",
    icon: Optional[str] = None,
    order_position: Optional[int] = None,
) -> PipelineColumn:
    if order_position is None:
        last = db.query(func.max(PipelineColumn.order_position)).filter(PipelineColumn.pipeline_id == pipeline.id).scalar()
        order_position = 0 if last is None else last + 1
    column = PipelineColumn(pipeline_id=pipeline.id, name=name, color=color, icon=icon, order_position=order_position)
    db.add(column)
    db.commit()
    db.refresh(column)
    return column


def delete_column(db: Session, column_id: int, workspace_id: int) -> None:
    """Delete an empty column together with its automations."""
    column = get_column(db, column_id, workspace_id)
    card_count = db.query(func.count(PipelineCard.id)).filter(PipelineCard.column_id == column.id).scalar()
    if card_count:
        raise ColumnNotEmptyError(column.id, card_count)
    db.delete(column)
    db.commit()
    logger.info("Deleted column %s of pipeline %s", column_id, column.pipeline_id)
