from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.pipeline import Pipeline, PipelineColumn  # noqa: F401
from backend.app.models.card import PipelineCard  # noqa: F401
from backend.app.models.contact import Contact, ContactTag, Tag  # noqa: F401
from backend.app.models.conversation import Connection, Conversation, Message, Queue  # noqa: F401
from backend.app.models.automation import AutomationAction, AutomationTrigger, ColumnAutomation  # noqa: F401
from backend.app.models.execution import AutomationExecution  # noqa: F401
from backend.app.models.funnel import (  # noqa: F401
    FunnelStep,
    QuickAudio,
    QuickDocument,
    QuickFunnel,
    QuickMedia,
    QuickMessage,
)
from backend.app.models.business_hours import WorkspaceBusinessHours  # noqa: F401
