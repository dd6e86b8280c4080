"""Tests for time reference parsing and relative formatting."""

from datetime import datetime, timedelta, timezone

import pytest

from debuggraph.timeutil import format_relative_time, parse_time_reference

NOW = datetime(2025, 6, 15, 14, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("ref,expected", [
    ("today", datetime(2025, 6, 15, tzinfo=timezone.utc)),
    ("yesterday", datetime(2025, 6, 14, tzinfo=timezone.utc)),
    ("last week", NOW - timedelta(weeks=1)),
    ("last month", datetime(2025, 5, 15, 14, 30, tzinfo=timezone.utc)),
    ("3 hours ago", NOW - timedelta(hours=3)),
    ("2 days ago", NOW - timedelta(days=2)),
    ("1 month ago", datetime(2025, 5, 15, 14, 30, tzinfo=timezone.utc)),
    ("  30 Minutes Ago ", NOW - timedelta(minutes=30)),
])
def test_relative_and_named(ref, expected):
    assert parse_time_reference(ref, now=NOW) == expected


def test_iso_dates_are_utc():
    assert parse_time_reference("2025-01-15") == datetime(2025, 1, 15, tzinfo=timezone.utc)
    parsed = parse_time_reference("2025-01-15T10:00:00+02:00")
    assert parsed == datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


def test_unparseable():
    with pytest.raises(ValueError):
        parse_time_reference("sometime soon-ish")


@pytest.mark.parametrize("ref", [5, None, ["yesterday"]])
def test_non_string_rejected(ref):
    with pytest.raises(ValueError):
        parse_time_reference(ref, now=NOW)


@pytest.mark.parametrize("delta,expected", [
    (timedelta(seconds=5), "5 seconds ago"),
    (timedelta(minutes=1), "1 minute ago"),
    (timedelta(hours=3), "3 hours ago"),
    (timedelta(days=2), "2 days ago"),
    (timedelta(days=14), "2 weeks ago"),
    (timedelta(days=65), "2 months ago"),
    (timedelta(days=400), "1 year ago"),
])
def test_format_relative_time(delta, expected):
    assert format_relative_time(NOW - delta, now=NOW) == expected


def test_format_future_and_naive():
    assert format_relative_time(NOW + timedelta(hours=1), now=NOW) == "in the future"
    naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)
    assert format_relative_time(naive, now=NOW) == "2 hours ago"
