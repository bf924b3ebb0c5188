"""Pipeline card schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


AllowedCardStatus = Literal["open", "won", "lost"]


class CardCreate(BaseModel):
    pipeline_id: int
    column_id: int
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    description: Optional[str] = None
    value: Decimal = Decimal("0")
    status: AllowedCardStatus = "open"
    tags: list[str] = []
    responsible_user_id: Optional[int] = None


class CardUpdate(BaseModel):
    """Partial card update; only fields present in the request body are applied."""

    pipeline_id: Optional[int] = None
    column_id: Optional[int] = None
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    description: Optional[str] = None
    value: Optional[Decimal] = None
    status: Optional[AllowedCardStatus] = None
    tags: Optional[list[str]] = None
    responsible_user_id: Optional[int] = None


class CardRead(BaseModel):
    id: int
    pipeline_id: int
    column_id: int
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    description: Optional[str] = None
    value: Decimal
    status: str
    tags: list[str] = []
    responsible_user_id: Optional[int] = None
    moved_to_column_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AutomationRunRead(BaseModel):
    automation_id: int
    automation_name: str
    trigger_kind: str
    column_id: int
    status: str
    actions_failed: int = 0


class CardMutationRead(BaseModel):
    card: CardRead
    transition: str
    automations: list[AutomationRunRead] = []
