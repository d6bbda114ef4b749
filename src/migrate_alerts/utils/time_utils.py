# SPDX-License-Identifier: MIT
# src/migrate_alerts/utils/time_utils.py
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return tz‐aware UTC "now"."""
    return datetime.now(timezone.utc)


def utc_from_epoch_ms(ms: int) -> datetime:
    """
    Convert a millisecond‐since‐epoch timestamp to tz‐aware UTC datetime.
    """
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """
    Convert a datetime to milliseconds since epoch.
    Naive datetimes are assumed to already be in UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def minutes_to_ms(minutes: float) -> int:
    return int(minutes * 60 * 1000)


def hours_to_ms(hours: float) -> int:
    return int(hours * 60 * 60 * 1000)
