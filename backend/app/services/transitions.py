"""Classify a card mutation by how it changed the card's column."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.services import execution_ledger
from backend.app.services.automation_config import TriggerKind


class TransitionKind(str, Enum):
    NONE = "none"
    ENTERED = "entered"
    LEFT = "left"
    BOTH = "both"


class _NotProvided:
    def __repr__(self):
        return "NOT_PROVIDED"


# column_id absent from the mutation payload
NOT_PROVIDED = _NotProvided()


@dataclass(frozen=True)
class LedgerPurge:
    card_id: int
    column_id: int


@dataclass(frozen=True)
class Transition:
    card_id: int
    kind: TransitionKind
    previous_column_id: Optional[int]
    new_column_id: Optional[int]

    @property
    def column_changed(self) -> bool:
        return self.kind != TransitionKind.NONE

    @property
    def purge(self) -> Optional[LedgerPurge]:
        if self.kind in (TransitionKind.LEFT, TransitionKind.BOTH):
            return LedgerPurge(self.card_id, self.previous_column_id)
        return None

    def trigger_plan(self) -> list[tuple[TriggerKind, int]]:
        plan = []
        if self.kind in (TransitionKind.LEFT, TransitionKind.BOTH):
            plan.append((TriggerKind.LEFT_COLUMN, self.previous_column_id))
        if self.kind in (TransitionKind.ENTERED, TransitionKind.BOTH):
            plan.append((TriggerKind.ENTERED_COLUMN, self.new_column_id))
        return plan


def classify_transition(card_id: int, previous_column_id: Optional[int], new_column_id=NOT_PROVIDED) -> Transition:
    if new_column_id is NOT_PROVIDED or new_column_id == previous_column_id:
        kind = TransitionKind.NONE
        new_column_id = previous_column_id
    elif previous_column_id is None:
        kind = TransitionKind.ENTERED
    elif new_column_id is None:
        kind = TransitionKind.LEFT
    else:
        kind = TransitionKind.BOTH
    return Transition(card_id, kind, previous_column_id, new_column_id)


def apply_purge(db: Session, transition: Transition) -> int:
    purge = transition.purge
    if purge is None:
        return 0
    return execution_ledger.purge(db, purge.card_id, purge.column_id)
