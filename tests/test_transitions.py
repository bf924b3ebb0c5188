from backend.app.services.automation_config import TriggerKind
from backend.app.services.transitions import NOT_PROVIDED, LedgerPurge, TransitionKind, classify_transition


def test_missing_column_is_no_transition():
    transition = classify_transition(7, 3)
    assert transition.kind == TransitionKind.NONE
    assert transition.new_column_id == 3
    assert transition.purge is None
    assert transition.trigger_plan() == []


def test_same_column_is_no_transition():
    transition = classify_transition(7, 3, 3)
    assert transition.kind == TransitionKind.NONE
    assert not transition.column_changed


def test_first_assignment_is_entered():
    transition = classify_transition(7, None, 4)
    assert transition.kind == TransitionKind.ENTERED
    assert transition.purge is None
    assert transition.trigger_plan() == [(TriggerKind.ENTERED_COLUMN, 4)]


def test_move_is_both_with_left_first():
    transition = classify_transition(7, 3, 4)
    assert transition.kind == TransitionKind.BOTH
    assert transition.purge == LedgerPurge(card_id=7, column_id=3)
    assert transition.trigger_plan() == [
        (TriggerKind.LEFT_COLUMN, 3),
        (TriggerKind.ENTERED_COLUMN, 4),
    ]


def test_cleared_column_is_left():
    transition = classify_transition(7, 3, None)
    assert transition.kind == TransitionKind.LEFT
    assert transition.purge == LedgerPurge(card_id=7, column_id=3)
    assert transition.trigger_plan() == [(TriggerKind.LEFT_COLUMN, 3)]


def test_not_provided_sentinel_is_distinct_from_none():
    assert NOT_PROVIDED is not None
    assert classify_transition(1, 2, NOT_PROVIDED).kind == TransitionKind.NONE
    assert classify_transition(1, 2, None).kind == TransitionKind.LEFT
