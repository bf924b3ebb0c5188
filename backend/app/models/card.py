"""Pipeline card model."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class PipelineCard(Base):
    __tablename__ = "pipeline_cards"

    id = Column(Integer, primary_key=True, index=True)
    pipeline_id = Column(Integer, ForeignKey("pipelines.id"), nullable=False, index=True)
    column_id = Column(Integer, ForeignKey("pipeline_columns.id"), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=True)
    description = Column(Text, nullable=True)
    value = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="open")
    tags = Column(JSON, nullable=False, default=list)
    responsible_user_id = Column(Integer, nullable=True)
    moved_to_column_at = Column(DateTime(timezone=True), nullable=True, default=utc_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    pipeline = relationship("Pipeline", back_populates="cards")
    column = relationship("PipelineColumn", back_populates="cards")
    contact = relationship("Contact")
    conversation = relationship("Conversation")
