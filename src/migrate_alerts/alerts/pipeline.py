# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/pipeline.py
"""
Detection pipeline: scraped observations in, alert-worthy observations out.

Steps per observation, in input order:
1. drop placeholders (whole-page dumps) and observations without an entity id
2. parse time_text; unknown timing never alerts
3. drop anything beyond the alert threshold
4. classify the tier and consult the ledger for the (entity, tier) key

The ledger is then pruned and saved once per cycle.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from migrate_alerts.utils.time_utils import to_epoch_ms, utc_from_epoch_ms, utc_now
from .ledger import AlertLedger, DEFAULT_COOLDOWN_MS, DEFAULT_RETENTION_MS
from .models import ClassifiedObservation, RawObservation
from .tiers import classify
from .time_parser import parse_time_to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionConfig:
    threshold_minutes: float = 30
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    retention_ms: int = DEFAULT_RETENTION_MS


def classify_observation(obs: RawObservation) -> ClassifiedObservation:
    """Parse and classify a single observation without consulting the ledger."""
    minutes = parse_time_to_minutes(obs.time_text)
    if minutes is None:
        return ClassifiedObservation(obs)
    return ClassifiedObservation(obs, minutes_until=float(minutes), tier=classify(minutes))


def classify_observations(observations: Iterable[RawObservation]) -> List[ClassifiedObservation]:
    return [classify_observation(o) for o in observations if not o.is_placeholder]


class DetectionPipeline:
    """
    Decides which observations should alert now, and records them in the ledger.

    A single pipeline must not be run concurrently: detect() is a
    load-mutate-save cycle over the ledger.
    """

    def __init__(self, ledger: Optional[AlertLedger] = None, config: Optional[DetectionConfig] = None):
        self.ledger = ledger if ledger is not None else AlertLedger()
        self.config = config or DetectionConfig()
        self.last_stats: Dict[str, int] = {}

    def detect(
        self,
        observations: Iterable[RawObservation],
        threshold_minutes: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> List[ClassifiedObservation]:
        """
        Return the observations that should alert now, in input order.

        Args:
            observations: Raw observations from one scrape
            threshold_minutes: Only alert within this many minutes (default: config)
            now: Cycle timestamp (default: current UTC time)
        """
        threshold = self.config.threshold_minutes if threshold_minutes is None else threshold_minutes
        now_ms = to_epoch_ms(now or utc_now())

        stats = {
            "seen": 0,
            "placeholder": 0,
            "no_id": 0,
            "unknown_timing": 0,
            "beyond_threshold": 0,
            "suppressed": 0,
            "alertable": 0,
            "evicted": 0,
        }
        alertable: List[ClassifiedObservation] = []

        for obs in observations:
            stats["seen"] += 1

            if obs.is_placeholder:
                stats["placeholder"] += 1
                continue

            if not obs.entity_id:
                stats["no_id"] += 1
                continue

            classified = classify_observation(obs)
            if classified.minutes_until is None:
                logger.debug(f"Unknown timing for {obs.entity_id}: {obs.time_text!r}")
                stats["unknown_timing"] += 1
                continue

            if classified.minutes_until > threshold:
                stats["beyond_threshold"] += 1
                continue

            key = classified.alert_key
            if not self.ledger.should_fire(key, now_ms, self.config.cooldown_ms):
                last_fired = utc_from_epoch_ms(self.ledger.get(key))
                logger.debug(f"Already alerted {key.serialize()} at {last_fired.isoformat()}, within cooldown")
                stats["suppressed"] += 1
                continue

            self.ledger.record(key, now_ms)
            alertable.append(classified)

        stats["alertable"] = len(alertable)
        stats["evicted"] = self.ledger.evict_older_than(now_ms, self.config.retention_ms)
        self.ledger.save()

        self.last_stats = stats
        logger.info(
            "Detection: seen=%s alertable=%s suppressed=%s unknown_timing=%s beyond_threshold=%s",
            stats["seen"], stats["alertable"], stats["suppressed"],
            stats["unknown_timing"], stats["beyond_threshold"],
        )
        return alertable
