"""Quick funnel models and the canned templates their steps reference."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class QuickFunnel(Base):
    __tablename__ = "quick_funnels"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    steps = relationship(
        "FunnelStep",
        back_populates="funnel",
        cascade="all, delete-orphan",
        order_by=lambda: [FunnelStep.step_order, FunnelStep.id],
    )


class FunnelStep(Base):
    __tablename__ = "quick_funnel_steps"

    id = Column(Integer, primary_key=True, index=True)
    funnel_id = Column(Integer, ForeignKey("quick_funnels.id"), nullable=False, index=True)
    step_order = Column(Integer, nullable=False, default=0)
    step_type = Column(String, nullable=False)
    item_id = Column(Integer, nullable=False)
    delay_seconds = Column(Integer, nullable=False, default=0)

    funnel = relationship("QuickFunnel", back_populates="steps")


class QuickMessage(Base):
    __tablename__ = "quick_messages"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)


class QuickAudio(Base):
    __tablename__ = "quick_audios"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=True)
    file_url = Column(String, nullable=False)
    file_name = Column(String, nullable=True)


class QuickMedia(Base):
    __tablename__ = "quick_media"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=True)
    file_url = Column(String, nullable=False)
    file_name = Column(String, nullable=True)
    file_type = Column(String, nullable=True)


class QuickDocument(Base):
    __tablename__ = "quick_documents"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=True)
    file_url = Column(String, nullable=False)
    file_name = Column(String, nullable=True)
