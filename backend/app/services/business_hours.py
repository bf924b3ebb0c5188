"""Business-hours gate for automation messages."""

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now
from backend.app.models.business_hours import WorkspaceBusinessHours

logger = logging.getLogger(__name__)


def _minutes_of_day(value: str) -> int:
    parts = value.split(":")
    return int(parts[0]) * 60 + int(parts[1])


def is_within_business_hours(
    db: Session,
    workspace_id: int,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> bool:
    """True when sending is allowed right now.

    No enabled rows, or no row for today, means no restriction. Windows whose
    end is before their start wrap past midnight.
    """
    hours = (
        db.query(WorkspaceBusinessHours)
        .filter(WorkspaceBusinessHours.workspace_id == workspace_id, WorkspaceBusinessHours.is_enabled.is_(True))
        .all()
    )
    if not hours:
        return True

    local_now = (now or utc_now()).astimezone(ZoneInfo(tz_name or get_settings().business_hours_timezone))
    day_of_week = (local_now.weekday() + 1) % 7  # Sunday=0
    today = next((h for h in hours if h.day_of_week == day_of_week), None)
    if today is None:
        return True

    start = _minutes_of_day(today.start_time)
    end = _minutes_of_day(today.end_time)
    current = local_now.hour * 60 + local_now.minute
    if end > start:
        allowed = start <= current <= end
    else:
        allowed = current >= start or current <= end

    if not allowed:
        logger.info(
            "Workspace %s outside business hours (%s-%s, now %02d:%02d)",
            workspace_id,
            today.start_time,
            today.end_time,
            local_now.hour,
            local_now.minute,
        )
    return allowed
