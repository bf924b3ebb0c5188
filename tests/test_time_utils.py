from datetime import UTC, datetime, timedelta, timezone

from backend.app.core.time import as_utc, utc_now


def test_utc_now_is_timezone_aware_utc():
    value = utc_now()
    assert value.tzinfo is UTC


def test_as_utc_attaches_utc_to_naive_values():
    value = as_utc(datetime(2024, 5, 1, 12, 30))
    assert value == datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def test_as_utc_converts_other_offsets():
    sao_paulo = timezone(timedelta(hours=-3))
    value = as_utc(datetime(2024, 5, 1, 9, 0, tzinfo=sao_paulo))
    assert value == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert value.tzinfo is UTC


def test_as_utc_passes_none_through():
    assert as_utc(None) is None
