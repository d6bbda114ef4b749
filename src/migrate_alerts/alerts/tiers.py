# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/tiers.py
"""
Urgency tiers for upcoming migrations.

Tiers are keyed by minutes remaining, tightest first. The urgency rank, color
and label are presentation only; deduplication treats every tier as its own key.
"""
from __future__ import annotations
from enum import Enum
from typing import Tuple


class Tier(str, Enum):
    IMMINENT = "imminent"
    SOON = "soon"
    UPCOMING = "upcoming"
    SCHEDULED = "scheduled"

    @property
    def urgency(self) -> int:
        return _URGENCY[self]

    @property
    def color(self) -> int:
        """Discord embed color."""
        return _COLORS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    def __str__(self) -> str:
        return self.value


_URGENCY = {
    Tier.IMMINENT: 3,
    Tier.SOON: 2,
    Tier.UPCOMING: 1,
    Tier.SCHEDULED: 0,
}

_COLORS = {
    Tier.IMMINENT: 0xFF0000,   # red
    Tier.SOON: 0xFF8C00,       # orange
    Tier.UPCOMING: 0xFFD700,   # gold
    Tier.SCHEDULED: 0x00FF00,  # green
}

_LABELS = {
    Tier.IMMINENT: "🚨 IMMINENT",
    Tier.SOON: "⚠️ SOON",
    Tier.UPCOMING: "📢 UPCOMING",
    Tier.SCHEDULED: "📅 SCHEDULED",
}

# (upper bound in minutes, inclusive) -> tier, evaluated in order
TIER_BOUNDS: Tuple[Tuple[float, Tier], ...] = (
    (5, Tier.IMMINENT),
    (15, Tier.SOON),
    (30, Tier.UPCOMING),
)


def classify(minutes: float) -> Tier:
    """
    Map minutes-until-migration to a tier.

    Upper edges are inclusive: 5 -> imminent, 15 -> soon, 30 -> upcoming,
    anything above 30 -> scheduled.
    """
    if minutes < 0:
        raise ValueError(f"minutes must be non-negative, got {minutes}")
    for bound, tier in TIER_BOUNDS:
        if minutes <= bound:
            return tier
    return Tier.SCHEDULED
