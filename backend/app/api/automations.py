"""Column automation endpoints, ledger inspection and the dwell-time scan hook."""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from backend.app.core.errors import CardNotFoundError, ColumnNotFoundError
from backend.app.db.session import get_db
from backend.app.dependencies.workspace import get_workspace_id
from backend.app.models.automation import AutomationAction, AutomationTrigger, ColumnAutomation
from backend.app.schemas.automation import AutomationCreate, AutomationRead, AutomationUpdate, ExecutionRead
from backend.app.schemas.scan import ScanResponse
from backend.app.services import execution_ledger
from backend.app.services.card_mutation import get_card
from backend.app.services.dwell_scanner import scan_dwell_times
from backend.app.services.engine_services import EngineServices, get_engine_services
from backend.app.services.pipelines import get_column

router = APIRouter(tags=["automations"])


@router.post("/columns/{column_id}/automations", response_model=AutomationRead)
def create_automation(
    column_id: int,
    automation_in: AutomationCreate,
    db: Session = Depends(get_db),
    workspace_id: int = Depends(get_workspace_id),
):
    try:
        column = get_column(db, column_id, workspace_id)
    except ColumnNotFoundError:
        raise HTTPException(status_code=404, detail="Column not found")

    automation = ColumnAutomation(
        column_id=column.id,
        workspace_id=workspace_id,
        name=automation_in.name,
        description=automation_in.description,
        is_active=automation_in.is_active,
        ignore_business_hours=automation_in.ignore_business_hours,
    )
    automation.triggers = [
        AutomationTrigger(trigger_type=trigger.trigger_type, trigger_config=trigger.trigger_config)
        for trigger in automation_in.triggers
    ]
    automation.actions = [
        AutomationAction(
            action_type=action.action_type,
            action_order=index if action.action_order is None else action.action_order,
            action_config=action.action_config,
        )
        for index, action in enumerate(automation_in.actions)
    ]
    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


@router.get("/columns/{column_id}/automations", response_model=list[AutomationRead])
def list_automations(column_id: int, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    return (
        db.query(ColumnAutomation)
        .filter(ColumnAutomation.column_id == column_id, ColumnAutomation.workspace_id == workspace_id)
        .order_by(ColumnAutomation.created_at.asc(), ColumnAutomation.id.asc())
        .all()
    )


@router.patch("/automations/{automation_id}", response_model=AutomationRead)
def update_automation(
    automation_id: int,
    automation_in: AutomationUpdate,
    db: Session = Depends(get_db),
    workspace_id: int = Depends(get_workspace_id),
):
    automation = (
        db.query(ColumnAutomation)
        .filter(ColumnAutomation.id == automation_id, ColumnAutomation.workspace_id == workspace_id)
        .first()
    )
    if not automation:
        raise HTTPException(status_code=404, detail="Automation not found")
    for name, value in automation_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(automation, name, value)
    db.commit()
    db.refresh(automation)
    return automation


@router.get("/automations/executions", response_model=list[ExecutionRead])
def list_executions(card_id: int, db: Session = Depends(get_db), workspace_id: int = Depends(get_workspace_id)):
    try:
        card = get_card(db, card_id, workspace_id)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")
    return execution_ledger.list_entries(db, card.id)


@router.post("/automations/check-time", response_model=ScanResponse)
def check_time_automations(
    db: Session = Depends(get_db),
    services: EngineServices = Depends(get_engine_services),
    x_workspace_id: int | None = Header(default=None),
):
    # The scheduler scans every workspace unless it narrows the run with the header
    report = scan_dwell_times(db, services, workspace_id=x_workspace_id)
    return ScanResponse(
        checked_cards=report.checked_cards,
        executed_automations=report.executed_automations,
        errors=report.errors,
        results=report.results,
    )
