"""Pipeline and column schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PipelineCreate(BaseModel):
    name: str
    type: str = "padrao"


class PipelineRead(BaseModel):
    id: int
    workspace_id: int
    name: str
    type: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ColumnCreate(BaseModel):
    name: str
    color: str = "#808080"
    icon: Optional[str] = None
    order_position: Optional[int] = None


class ColumnRead(BaseModel):
    id: int
    pipeline_id: int
    name: str
    color: str
    icon: Optional[str] = None
    order_position: int

    model_config = ConfigDict(from_attributes=True)
