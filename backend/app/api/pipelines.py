"""Pipeline and column endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.app.core.errors import ColumnNotEmptyError, ColumnNotFoundError, PipelineNotFoundError
from backend.app.db.session import get_db
from backend.app.dependencies.workspace import get_workspace_id
from backend.app.models.pipeline import Pipeline
from backend.app.schemas.pipeline import ColumnCreate, ColumnRead, PipelineCreate, PipelineRead
from backend.app.services.pipelines import add_column, delete_column, get_pipeline

router = APIRouter(prefix="/pipelines", tags=["pipelines"])


def _owned_pipeline(db: Session, pipeline_id: int, workspace_id: int) -> Pipeline:
    try:
        return get_pipeline(db, pipeline_id, workspace_id)
    except PipelineNotFoundError:
        raise HTTPException(status_code=404, detail="Pipeline not found")


@router.post("", response_model=PipelineRead)
def create_pipeline(pipeline_in: PipelineCreate, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    pipeline = Pipeline(workspace_id=workspace_id, name=pipeline_in.name, type=pipeline_in.type)
    db.add(pipeline)
    db.commit()
    db.refresh(pipeline)
    return pipeline


@router.get("", response_model=list[PipelineRead])
def list_pipelines(db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    return (
        db.query(Pipeline)
        .filter(Pipeline.workspace_id == workspace_id, Pipeline.is_active.is_(True))
        .order_by(Pipeline.created_at.asc(), Pipeline.id.asc())
        .all()
    )


@router.post("/{pipeline_id}/columns", response_model=ColumnRead)
def create_column(
    pipeline_id: int,
    column_in: ColumnCreate,
    db: Session = Depends(get_db),
    workspace_id: int = Depends(get_workspace_id),
):
    pipeline = _owned_pipeline(db, pipeline_id, workspace_id)
    return add_column(
        db,
        pipeline,
        column_in.name,
        color=column_in.color,
        icon=column_in.icon,
        order_position=column_in.order_position,
    )


@router.get("/{pipeline_id}/columns", response_model=list[ColumnRead])
def list_columns(pipeline_id: int, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    return _owned_pipeline(db, pipeline_id, workspace_id).columns


@router.delete("/columns/{column_id}", status_code=204)
def remove_column(column_id: int, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    try:
        delete_column(db, column_id, workspace_id)
    except ColumnNotFoundError:
        raise HTTPException(status_code=404, detail="Column not found")
    except ColumnNotEmptyError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
