"""Card endpoints. Every write goes through the card mutation service so column automations fire."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backend.app.core.errors import (
    CardNotFoundError,
    ColumnNotFoundError,
    ColumnPipelineMismatchError,
    DuplicateOpenCardError,
    PipelineNotFoundError,
)
from backend.app.db.session import get_db
from backend.app.dependencies.workspace import get_workspace_id
from backend.app.schemas.card import AutomationRunRead, CardCreate, CardMutationRead, CardRead, CardUpdate
from backend.app.services.card_mutation import CardMutationResult, create_card, get_card, update_card
from backend.app.services.engine_services import EngineServices, get_engine_services

router = APIRouter(prefix="/cards", tags=["cards"])


def _mutation_response(result: CardMutationResult) -> CardMutationRead:
    return CardMutationRead(
        card=CardRead.model_validate(result.card),
        transition=result.transition.kind.value,
        automations=[
            AutomationRunRead(
                automation_id=run.automation_id,
                automation_name=run.automation_name,
                trigger_kind=run.trigger_kind,
                column_id=run.column_id,
                status=run.status.value,
                actions_failed=run.batch.failed_count if run.batch else 0,
            )
            for run in result.runs
        ],
    )


@router.post("", response_model=CardMutationRead)
def create_pipeline_card(
    card_in: CardCreate,
    db: Session = Depends(get_db),
    workspace_id: int = Depends(get_workspace_id),
    services: EngineServices = Depends(get_engine_services),
):
    try:
        result = create_card(db, card_in.model_dump(), services, workspace_id=workspace_id)
    except PipelineNotFoundError:
        raise HTTPException(status_code=404, detail="Pipeline not found")
    except ColumnNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid column")
    except ColumnPipelineMismatchError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except DuplicateOpenCardError as exc:
        return JSONResponse(
            status_code=409,
            content={"error": "duplicate_open_card", "message": str(exc), "card_id": exc.card_id},
        )
    return _mutation_response(result)


@router.get("/{card_id}", response_model=CardRead)
def read_card(card_id: int, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    try:
        return get_card(db, card_id, workspace_id)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")


@router.put("/{card_id}", response_model=CardMutationRead)
def update_pipeline_card(
    card_id: int,
    card_in: CardUpdate,
    db: Session = Depends(get_db),
    workspace_id: int = Depends(get_workspace_id),
    services: EngineServices = Depends(get_engine_services),
):
    changes = card_in.model_dump(exclude_unset=True)
    try:
        result = update_card(db, card_id, changes, services, workspace_id=workspace_id)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")
    except ColumnNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid column")
    except ColumnPipelineMismatchError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _mutation_response(result)
