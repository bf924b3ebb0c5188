from datetime import UTC, datetime

import pytest

from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.business_hours import WorkspaceBusinessHours
from backend.app.services.business_hours import is_within_business_hours

# 2024-03-04 is a Monday; Sao Paulo is UTC-3
MONDAY_10_LOCAL = datetime(2024, 3, 4, 13, 0, tzinfo=UTC)
MONDAY_20_LOCAL = datetime(2024, 3, 4, 23, 0, tzinfo=UTC)
MONDAY_02_LOCAL = datetime(2024, 3, 4, 5, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def add_hours(day_of_week, start, end, enabled=True, workspace_id=1):
    db = SessionLocal()
    try:
        db.add(
            WorkspaceBusinessHours(
                workspace_id=workspace_id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                is_enabled=enabled,
            )
        )
        db.commit()
    finally:
        db.close()


def check(now, workspace_id=1):
    db = SessionLocal()
    try:
        return is_within_business_hours(db, workspace_id, now=now, tz_name="America/Sao_Paulo")
    finally:
        db.close()


def test_no_configuration_means_always_open():
    assert check(MONDAY_20_LOCAL)


def test_inside_and_outside_daytime_window():
    add_hours(1, "08:00", "18:00")
    assert check(MONDAY_10_LOCAL)
    assert not check(MONDAY_20_LOCAL)


def test_day_without_row_is_open():
    add_hours(2, "08:00", "18:00")
    assert check(MONDAY_20_LOCAL)


def test_disabled_rows_are_ignored():
    add_hours(1, "08:00", "18:00", enabled=False)
    assert check(MONDAY_20_LOCAL)


def test_window_past_midnight_wraps():
    add_hours(1, "22:00:00", "03:00:00")
    assert check(MONDAY_02_LOCAL)
    assert not check(MONDAY_10_LOCAL)


def test_other_workspace_hours_do_not_apply():
    add_hours(1, "08:00", "18:00", workspace_id=2)
    assert check(MONDAY_20_LOCAL)
