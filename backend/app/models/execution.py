"""Execution ledger model for column automations."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class AutomationExecution(Base):
    __tablename__ = "crm_automation_executions"
    __table_args__ = (
        UniqueConstraint(
            "automation_id", "card_id", "column_id", "execution_type", name="uq_automation_executions_slot"
        ),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(Integer, nullable=False, index=True)
    card_id = Column(Integer, nullable=False, index=True)
    column_id = Column(Integer, nullable=False)
    execution_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="running")
    claimed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    executed_at = Column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    execution_metadata = Column("metadata", JSON, nullable=True)
