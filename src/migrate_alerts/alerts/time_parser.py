# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/time_parser.py
"""
Turn countdown text scraped from the projects page into minutes remaining.

Page markup is unstable, so anything unrecognised comes back as None
("unknown timing") and is never treated as zero.
"""
from __future__ import annotations
import math
import re
from typing import Optional

# "30m", "2h", "45 s", "30min"
_COMPACT_RX = re.compile(r"(\d+)\s*(h|m|s)", re.IGNORECASE)
# "2 hours", "1 day", "30 minutes"
_WORD_RX = re.compile(r"(\d+)\s*(day|hour|minute|second)", re.IGNORECASE)
# "1:30", "01:05:30"
_CLOCK_RX = re.compile(r"(\d+):(\d+)(?::(\d+))?")

_UNIT_MINUTES = {
    "d": 24 * 60,
    "h": 60,
    "m": 1,
}


def _to_minutes(value: int, unit: str) -> int:
    unit = unit[0].lower()
    if unit == "s":
        return math.ceil(value / 60)
    return value * _UNIT_MINUTES[unit]


def parse_time_to_minutes(text: Optional[str]) -> Optional[int]:
    """
    Parse a time string into minutes until the event.

    Forms are tried in priority order, first match wins:
    compact unit ("30m"), word unit ("2 hours"), clock ("1:30" / "1:30:00",
    seconds ignored). Returns None when nothing matches.
    """
    if not text:
        return None

    m = _COMPACT_RX.search(text)
    if m:
        return _to_minutes(int(m.group(1)), m.group(2))

    m = _WORD_RX.search(text)
    if m:
        return _to_minutes(int(m.group(1)), m.group(2))

    m = _CLOCK_RX.search(text)
    if m:
        return int(m.group(1)) * 60 + int(m.group(2))

    return None
