"""Per-workspace business hours used to gate outbound automation messages."""

from sqlalchemy import Boolean, Column, Integer, String

from backend.app.db.base_class import Base


class WorkspaceBusinessHours(Base):
    __tablename__ = "workspace_business_hours"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_time = Column(String, nullable=False)  # "HH:MM" or "HH:MM:SS"
    end_time = Column(String, nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
