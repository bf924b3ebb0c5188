"""Column automation models: automations with their triggers and actions."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class ColumnAutomation(Base):
    __tablename__ = "crm_column_automations"

    id = Column(Integer, primary_key=True, index=True)
    column_id = Column(Integer, ForeignKey("pipeline_columns.id"), nullable=False, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    ignore_business_hours = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    column = relationship("PipelineColumn", back_populates="automations")
    triggers = relationship("AutomationTrigger", back_populates="automation", cascade="all, delete-orphan")
    actions = relationship(
        "AutomationAction",
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by=lambda: [AutomationAction.action_order, AutomationAction.id],
    )


class AutomationTrigger(Base):
    __tablename__ = "crm_column_automation_triggers"

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(Integer, ForeignKey("crm_column_automations.id"), nullable=False, index=True)
    trigger_type = Column(String, nullable=False)
    trigger_config = Column(JSON, nullable=True)

    automation = relationship("ColumnAutomation", back_populates="triggers")


class AutomationAction(Base):
    __tablename__ = "crm_column_automation_actions"

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(Integer, ForeignKey("crm_column_automations.id"), nullable=False, index=True)
    action_type = Column(String, nullable=False)
    action_order = Column(Integer, nullable=False, default=0)
    action_config = Column(JSON, nullable=True)

    automation = relationship("ColumnAutomation", back_populates="actions")
