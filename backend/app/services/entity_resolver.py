"""Resolve the contact, conversation and connection an automation acts on.

Each lookup is an ordered tuple of strategies tried in sequence; a strategy
returns None when it has nothing to offer. Missing optional data is never an
error here, callers decide what a gap means for their action.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import ConfigurationError, ResolutionError
from backend.app.models.card import PipelineCard
from backend.app.models.contact import Contact
from backend.app.models.conversation import Connection, Conversation, Message
from backend.app.models.pipeline import Pipeline

logger = logging.getLogger(__name__)

CONNECTED = "connected"


@dataclass
class CardContext:
    card: PipelineCard
    workspace_id: int
    contact: Optional[Contact]
    conversation: Optional[Conversation]

    @property
    def pipeline_id(self) -> int:
        return self.card.pipeline_id

    @property
    def contact_id(self) -> Optional[int]:
        if self.card.contact_id is not None:
            return self.card.contact_id
        return self.conversation.contact_id if self.conversation is not None else None


def _linked_conversation(db: Session, card: PipelineCard, workspace_id: int) -> Optional[Conversation]:
    if card.conversation_id is None:
        return None
    return db.get(Conversation, card.conversation_id)


def _latest_contact_conversation(db: Session, card: PipelineCard, workspace_id: int) -> Optional[Conversation]:
    if card.contact_id is None:
        return None
    return (
        db.query(Conversation)
        .filter(
            Conversation.contact_id == card.contact_id,
            Conversation.workspace_id == workspace_id,
            Conversation.status == "open",
            Conversation.connection_id.isnot(None),
        )
        .order_by(Conversation.created_at.desc(), Conversation.id.desc())
        .first()
    )


CONVERSATION_STRATEGIES = (_linked_conversation, _latest_contact_conversation)


def resolve_conversation(db: Session, card: PipelineCard, workspace_id: int) -> Optional[Conversation]:
    for strategy in CONVERSATION_STRATEGIES:
        conversation = strategy(db, card, workspace_id)
        if conversation is not None:
            return conversation
    logger.info("No conversation resolvable for card %s (contact %s)", card.id, card.contact_id)
    return None


def resolve_context(db: Session, card: PipelineCard) -> CardContext:
    pipeline = db.get(Pipeline, card.pipeline_id)
    workspace_id = pipeline.workspace_id
    conversation = resolve_conversation(db, card, workspace_id)
    contact = None
    if card.contact_id is not None:
        contact = db.get(Contact, card.contact_id)
    elif conversation is not None:
        contact = conversation.contact
    return CardContext(card=card, workspace_id=workspace_id, contact=contact, conversation=conversation)


def _last_used_connection(db: Session, ctx: CardContext, config: dict) -> Optional[Connection]:
    if ctx.contact_id is None:
        return None
    row = (
        db.query(Conversation.connection_id)
        .join(Message, Message.conversation_id == Conversation.id)
        .filter(
            Conversation.contact_id == ctx.contact_id,
            Conversation.workspace_id == ctx.workspace_id,
            Conversation.connection_id.isnot(None),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .first()
    )
    if row is None:
        return None
    return db.get(Connection, row[0])


def _default_connection(db: Session, ctx: CardContext, config: dict) -> Optional[Connection]:
    return (
        db.query(Connection)
        .filter(Connection.workspace_id == ctx.workspace_id, Connection.status == CONNECTED)
        .order_by(Connection.created_at.asc(), Connection.id.asc())
        .first()
    )


def _specific_connection(db: Session, ctx: CardContext, config: dict) -> Optional[Connection]:
    connection_id = config.get("connection_id")
    if not connection_id:
        raise ConfigurationError("connection_mode is 'specific' but no connection_id is configured")
    connection = db.get(Connection, int(connection_id))
    if connection is None or connection.workspace_id != ctx.workspace_id:
        raise ResolutionError(f"Connection {connection_id} not found")
    if connection.status != CONNECTED:
        raise ResolutionError(f"Connection {connection.instance_name} is not connected (status: {connection.status})")
    return connection


def _conversation_connection(db: Session, ctx: CardContext, config: dict) -> Optional[Connection]:
    if ctx.conversation is None or ctx.conversation.connection_id is None:
        return None
    return db.get(Connection, ctx.conversation.connection_id)


CONNECTION_STRATEGIES = {
    "last": (_last_used_connection, _conversation_connection),
    "default": (_default_connection, _conversation_connection),
    "specific": (_specific_connection,),
}


def resolve_connection(db: Session, ctx: CardContext, config: dict) -> Connection:
    """Pick the connection a message goes out through, per ``connection_mode``."""
    mode = config.get("connection_mode") or "last"
    strategies = CONNECTION_STRATEGIES.get(mode)
    if strategies is None:
        raise ConfigurationError(f"Unknown connection_mode {mode!r}")
    for strategy in strategies:
        connection = strategy(db, ctx, config)
        if connection is not None:
            logger.debug("Connection %s selected for card %s (mode=%s)", connection.id, ctx.card.id, mode)
            return connection
    raise ResolutionError(f"No connection resolvable for card {ctx.card.id} (mode={mode})")
