"""Execution ledger: the de-duplication record for column automations.

An entry ``(automation, card, column, execution_type)`` means the automation
already ran for the card during its current stay in that column. Runs claim
their entry up front with an insert-if-not-exists; the claim becomes a
``succeeded`` record only when the whole action batch was clean and is
released otherwise so the next trigger retries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, false, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.execution import AutomationExecution

logger = logging.getLogger(__name__)

STATUS_RUNNING = "running"
STATUS_SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class LedgerClaim:
    entry_id: int
    automation_id: int
    card_id: int
    column_id: int
    execution_type: str


def _triple_filter(query, automation_id: int, card_id: int, column_id: int):
    return query.filter(
        AutomationExecution.automation_id == automation_id,
        AutomationExecution.card_id == card_id,
        AutomationExecution.column_id == column_id,
    )


def has_executed(
    db: Session,
    automation_id: int,
    card_id: int,
    column_id: int,
    since: Optional[datetime],
    execution_type: Optional[str] = None,
) -> bool:
    query = _triple_filter(db.query(AutomationExecution.id), automation_id, card_id, column_id).filter(
        AutomationExecution.status == STATUS_SUCCEEDED
    )
    if execution_type is not None:
        query = query.filter(AutomationExecution.execution_type == execution_type)
    if since is not None:
        query = query.filter(AutomationExecution.executed_at >= since)
    return query.first() is not None


def claim(
    db: Session,
    automation_id: int,
    card_id: int,
    column_id: int,
    since: Optional[datetime],
    execution_type: str,
    now: Optional[datetime] = None,
) -> Optional[LedgerClaim]:
    """Atomically reserve the ledger slot for one automation run.

    Returns None when a fresh record or a live claim already holds the slot.
    """
    now = now or utc_now()
    entry = AutomationExecution(
        automation_id=automation_id,
        card_id=card_id,
        column_id=column_id,
        execution_type=execution_type,
        status=STATUS_RUNNING,
        claimed_at=now,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return _take_over_stale(db, automation_id, card_id, column_id, since, execution_type, now)
    return LedgerClaim(entry.id, automation_id, card_id, column_id, execution_type)


def _take_over_stale(
    db: Session,
    automation_id: int,
    card_id: int,
    column_id: int,
    since: Optional[datetime],
    execution_type: str,
    now: datetime,
) -> Optional[LedgerClaim]:
    ttl = timedelta(minutes=get_settings().ledger_claim_ttl_minutes)
    outdated_record = (
        and_(AutomationExecution.status == STATUS_SUCCEEDED, AutomationExecution.executed_at < since)
        if since is not None
        else false()
    )
    abandoned_claim = and_(
        AutomationExecution.status == STATUS_RUNNING,
        AutomationExecution.claimed_at < now - ttl,
    )
    query = _triple_filter(db.query(AutomationExecution), automation_id, card_id, column_id).filter(
        AutomationExecution.execution_type == execution_type,
        or_(outdated_record, abandoned_claim),
    )
    updated = query.update(
        {
            AutomationExecution.status: STATUS_RUNNING,
            AutomationExecution.claimed_at: now,
            AutomationExecution.executed_at: None,
            AutomationExecution.execution_metadata: None,
        },
        synchronize_session=False,
    )
    db.commit()
    if updated != 1:
        return None

    entry_id = (
        _triple_filter(db.query(AutomationExecution.id), automation_id, card_id, column_id)
        .filter(AutomationExecution.execution_type == execution_type)
        .scalar()
    )
    logger.info(
        "Took over stale ledger entry %s for automation %s card %s column %s",
        entry_id,
        automation_id,
        card_id,
        column_id,
    )
    return LedgerClaim(entry_id, automation_id, card_id, column_id, execution_type)


def record(db: Session, claim: LedgerClaim, metadata: Optional[dict] = None, now: Optional[datetime] = None) -> bool:
    """Turn a claim into a succeeded entry. False if the claim no longer exists."""
    updated = (
        db.query(AutomationExecution)
        .filter(AutomationExecution.id == claim.entry_id, AutomationExecution.status == STATUS_RUNNING)
        .update(
            {
                AutomationExecution.status: STATUS_SUCCEEDED,
                AutomationExecution.executed_at: now or utc_now(),
                AutomationExecution.execution_metadata: metadata or {},
            },
            synchronize_session=False,
        )
    )
    db.commit()
    if updated != 1:
        # A move_to_column inside the batch purges the entry of the column being left
        logger.info("Ledger claim %s vanished before it could be recorded", claim.entry_id)
        return False
    return True


def release(db: Session, claim: LedgerClaim) -> None:
    db.query(AutomationExecution).filter(
        AutomationExecution.id == claim.entry_id,
        AutomationExecution.status == STATUS_RUNNING,
    ).delete(synchronize_session=False)
    db.commit()


def purge(db: Session, card_id: int, column_id: int) -> int:
    deleted = (
        db.query(AutomationExecution)
        .filter(AutomationExecution.card_id == card_id, AutomationExecution.column_id == column_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Purged %s ledger entr(ies) for card %s in column %s", deleted, card_id, column_id)
    return deleted


def list_entries(db: Session, card_id: int) -> list[AutomationExecution]:
    return (
        db.query(AutomationExecution)
        .filter(AutomationExecution.card_id == card_id)
        .order_by(AutomationExecution.claimed_at.asc(), AutomationExecution.id.asc())
        .all()
    )
