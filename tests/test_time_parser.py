# tests/test_time_parser.py
import pytest

from migrate_alerts.alerts.time_parser import parse_time_to_minutes


@pytest.mark.parametrize("text,expected", [
    ("30m", 30),
    ("2h", 120),
    ("45s", 1),
    ("1:30", 90),
    ("1:30:45", 90),
    ("0:04", 4),
    ("2 hours", 120),
    ("1 day", 1440),
    ("3 days", 4320),
    ("45 minutes", 45),
    ("30 seconds", 1),
    ("61s", 2),
    ("5 M", 5),
    ("Migrates in 12m", 12),
])
def test_recognised_forms(text, expected):
    assert parse_time_to_minutes(text) == expected


@pytest.mark.parametrize("text", ["garbage", "", None, "soon", "TBA", "::"])
def test_unrecognised_is_none_not_zero(text):
    assert parse_time_to_minutes(text) is None


def test_compact_form_wins_over_clock():
    # "1:30 15m" contains both; compact unit has priority
    assert parse_time_to_minutes("1:30 15m") == 15


def test_compact_form_wins_over_word_form():
    assert parse_time_to_minutes("2 days 3h") == 180


def test_parse_is_deterministic():
    assert parse_time_to_minutes("7m") == parse_time_to_minutes("7m") == 7
