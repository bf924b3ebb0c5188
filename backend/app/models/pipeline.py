"""Pipeline and column models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class Pipeline(Base):
    __tablename__ = "pipelines"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="padrao")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    columns = relationship(
        "PipelineColumn",
        back_populates="pipeline",
        cascade="all, delete-orphan",
        order_by="PipelineColumn.order_position",
    )
    cards = relationship("PipelineCard", back_populates="pipeline")


class PipelineColumn(Base):
    __tablename__ = "pipeline_columns"

    id = Column(Integer, primary_key=True, index=True)
    pipeline_id = Column(Integer, ForeignKey("pipelines.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#808080")
    icon = Column(String, nullable=True)
    order_position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    pipeline = relationship("Pipeline", back_populates="columns")
    cards = relationship("PipelineCard", back_populates="column")
    automations = relationship("ColumnAutomation", back_populates="column", cascade="all, delete-orphan")
