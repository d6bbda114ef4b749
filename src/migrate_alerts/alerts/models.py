# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/models.py
"""
Data model for scraped migration candidates and the alerts derived from them.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple, Optional

from migrate_alerts.utils.time_utils import utc_now
from .tiers import Tier

MAX_RAW_TEXT = 500
MAX_PLACEHOLDER_TEXT = 2000


class AlertKey(NamedTuple):
    """Deduplication unit: one entry per (entity, tier)."""
    entity_id: str
    tier: Tier

    def serialize(self) -> str:
        return f"{self.entity_id}_{self.tier.value}"

    @classmethod
    def parse(cls, raw: str) -> "AlertKey":
        """
        Inverse of serialize(). Entity ids may contain underscores, so the
        split happens at the last one.
        """
        entity_id, sep, tier = raw.rpartition("_")
        if not sep or not entity_id:
            raise ValueError(f"Malformed alert key: {raw!r}")
        return cls(entity_id, Tier(tier))


@dataclass(frozen=True)
class RawObservation:
    """One scraped candidate, produced fresh every cycle."""
    display_name: str
    raw_text: str = ""
    identifier: Optional[str] = None
    time_text: Optional[str] = None
    observed_at: datetime = field(default_factory=utc_now)
    address: Optional[str] = None
    source_element: Optional[str] = None
    is_placeholder: bool = False  # whole-page dump, carries no timing signal

    def __post_init__(self):
        limit = MAX_PLACEHOLDER_TEXT if self.is_placeholder else MAX_RAW_TEXT
        if self.raw_text and len(self.raw_text) > limit:
            object.__setattr__(self, "raw_text", self.raw_text[:limit])

    @property
    def entity_id(self) -> Optional[str]:
        return self.identifier or self.display_name or None


@dataclass(frozen=True)
class ClassifiedObservation:
    observation: RawObservation
    minutes_until: Optional[float] = None
    tier: Optional[Tier] = None

    @property
    def entity_id(self) -> Optional[str]:
        return self.observation.entity_id

    @property
    def display_name(self) -> str:
        return self.observation.display_name

    @property
    def address(self) -> Optional[str]:
        return self.observation.address

    @property
    def raw_text(self) -> str:
        return self.observation.raw_text

    @property
    def alert_key(self) -> Optional[AlertKey]:
        if self.tier is None or not self.entity_id:
            return None
        return AlertKey(self.entity_id, self.tier)
