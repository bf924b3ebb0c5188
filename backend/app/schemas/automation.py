"""Column automation and execution ledger schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.services.automation_config import normalize_action_type, normalize_trigger_type
from backend.app.services.actions import ACTION_HANDLERS


class TriggerIn(BaseModel):
    trigger_type: str
    trigger_config: Optional[dict[str, Any]] = None

    @field_validator("trigger_type")
    @classmethod
    def known_trigger(cls, value: str) -> str:
        kind = normalize_trigger_type(value)
        if kind is None:
            raise ValueError(f"Unknown trigger type: {value}")
        return kind.value


class ActionIn(BaseModel):
    action_type: str
    action_order: Optional[int] = None
    action_config: Optional[dict[str, Any]] = None

    @field_validator("action_type")
    @classmethod
    def known_action(cls, value: str) -> str:
        action_type = normalize_action_type(value)
        if action_type not in ACTION_HANDLERS:
            raise ValueError(f"Unknown action type: {value}")
        return action_type


class AutomationCreate(BaseModel):
    name: str
    description: Optional[str] = None
    is_active: bool = True
    ignore_business_hours: bool = False
    triggers: list[TriggerIn] = Field(min_length=1)
    actions: list[ActionIn] = Field(min_length=1)


class AutomationUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    ignore_business_hours: Optional[bool] = None


class TriggerRead(BaseModel):
    id: int
    trigger_type: str
    trigger_config: Optional[dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class ActionRead(BaseModel):
    id: int
    action_type: str
    action_order: int
    action_config: Optional[dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class AutomationRead(BaseModel):
    id: int
    column_id: int
    workspace_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    ignore_business_hours: bool
    created_at: Optional[datetime] = None
    triggers: list[TriggerRead] = []
    actions: list[ActionRead] = []

    model_config = ConfigDict(from_attributes=True)


class ExecutionRead(BaseModel):
    id: int
    automation_id: int
    card_id: int
    column_id: int
    execution_type: str
    status: str
    claimed_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="execution_metadata")

    model_config = ConfigDict(from_attributes=True)
