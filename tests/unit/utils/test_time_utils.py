from datetime import datetime, time, timedelta, timezone

from growcare.utils.rounding import round_half_up
from growcare.utils.time import (
    coerce_datetime,
    iso_now,
    parse_time_of_day,
    start_of_day,
    utc_now,
    whole_hours_between,
)


def test_coerce_datetime_parses_z_suffix():
    dt = coerce_datetime("2026-01-01T00:00:00Z")
    assert dt is not None
    assert dt.tzinfo is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.isoformat().endswith("+00:00")


def test_coerce_datetime_parses_offset():
    dt = coerce_datetime("2026-01-01T02:00:00+02:00")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.hour == 0


def test_coerce_datetime_parses_naive_as_utc():
    dt = coerce_datetime("2026-01-01T00:00:00")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)

    time_diff = utc_now() - dt
    assert isinstance(time_diff, timedelta)


def test_coerce_datetime_rejects_garbage():
    assert coerce_datetime("next tuesday") is None
    assert coerce_datetime(1700000000) is None
    assert coerce_datetime(None) is None


def test_iso_now_is_aware():
    assert iso_now().endswith("+00:00")
    assert len(iso_now(timespec="seconds")) == len("2026-01-01T00:00:00+00:00")


def test_start_of_day_keeps_tzinfo():
    dt = datetime(2026, 3, 10, 17, 45, 12, 999, tzinfo=timezone.utc)
    assert start_of_day(dt) == datetime(2026, 3, 10, tzinfo=timezone.utc)


def test_parse_time_of_day():
    assert parse_time_of_day("22:00") == time(22, 0)
    assert parse_time_of_day(" 07:30 ") == time(7, 30)
    assert parse_time_of_day(time(8, 0)) == time(8, 0)
    assert parse_time_of_day("25:00") is None
    assert parse_time_of_day("noon") is None
    assert parse_time_of_day(None) is None


def test_whole_hours_between_floors():
    start = datetime(2026, 3, 10, 0, 0, tzinfo=timezone.utc)
    assert whole_hours_between(start, start + timedelta(hours=5, minutes=59)) == 5
    assert whole_hours_between(start, start - timedelta(minutes=30)) == -1


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-4.8) == -5
    assert round_half_up(-4.5) == -4
    assert round_half_up(3.49) == 3
