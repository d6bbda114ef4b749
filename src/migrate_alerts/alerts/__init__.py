# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/__init__.py
"""
Migration alert detection and delivery.

This module provides:
- Time-until parsing and urgency tier classification
- A persisted ledger to deduplicate alerts per (token, tier)
- The detection pipeline that decides what to alert on each cycle
- Discord webhook delivery and cycle orchestration
"""

from .tiers import Tier, classify
from .time_parser import parse_time_to_minutes
from .models import AlertKey, ClassifiedObservation, RawObservation
from .ledger import AlertLedger
from .pipeline import DetectionConfig, DetectionPipeline
from .delivery import DiscordNotifier
from .orchestration import MigrationAlertOrchestrator

__all__ = [
    "Tier",
    "classify",
    "parse_time_to_minutes",
    "AlertKey",
    "ClassifiedObservation",
    "RawObservation",
    "AlertLedger",
    "DetectionConfig",
    "DetectionPipeline",
    "DiscordNotifier",
    "MigrationAlertOrchestrator",
]
