# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/orchestration.py
"""
Alert orchestration - integrates fetching, detection and delivery for one cycle.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

from migrate_alerts.sources import FetchError
from .models import ClassifiedObservation, RawObservation
from .pipeline import DetectionPipeline, classify_observations

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    def fetch(self) -> List[RawObservation]: ...


class Notifier(Protocol):
    def send(self, alert: ClassifiedObservation) -> bool: ...

    def send_error_notification(self, error: BaseException) -> bool: ...


class MigrationAlertOrchestrator:
    """
    Orchestrates one check cycle:
    1. Fetch observations from the projects page
    2. Run them through the detection pipeline (ledger dedup)
    3. Deliver alerts one by one with a small delay between sends

    A fetch failure aborts the cycle before detection, so the ledger is left
    untouched. After `failure_notify_after` consecutive failed cycles an error
    notification is sent once for the streak.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        pipeline: DetectionPipeline,
        notifier: Optional[Notifier] = None,
        threshold_minutes: Optional[float] = None,
        send_delay_seconds: float = 1.0,
        failure_notify_after: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.fetcher = fetcher
        self.pipeline = pipeline
        self.notifier = notifier
        self.threshold_minutes = threshold_minutes
        self.send_delay_seconds = send_delay_seconds
        self.failure_notify_after = max(1, failure_notify_after)
        self._sleep = sleep

        self.consecutive_failures = 0
        self._failure_notified = False

    def run_cycle(self) -> Dict[str, Any]:
        """
        Run one fetch -> detect -> deliver cycle.

        Returns:
            Summary statistics dict
        """
        stats: Dict[str, Any] = {
            "ok": False,
            "items_found": 0,
            "alerts_detected": 0,
            "alerts_delivered": 0,
            "delivery_failures": 0,
            "error": None,
        }

        try:
            observations = self.fetcher.fetch()
            stats["items_found"] = len(observations)
            self._log_observations(observations)
            alerts = self.pipeline.detect(observations, threshold_minutes=self.threshold_minutes)
        except FetchError as e:
            logger.error(f"Fetch failed, skipping cycle: {e}")
            return self._fail(stats, e)
        except Exception as e:
            logger.error(f"Error during check: {e}", exc_info=True)
            return self._fail(stats, e)

        stats["alerts_detected"] = len(alerts)
        self.consecutive_failures = 0
        self._failure_notified = False
        stats["ok"] = True

        if not alerts:
            logger.info("No alerts to send")
            return stats

        if self.notifier is None:
            logger.warning(f"No notifier configured - {len(alerts)} alert(s) recorded but not delivered")
            return stats

        logger.info(f"Sending {len(alerts)} alert(s)")
        delivered, failed = self.deliver(alerts)
        stats["alerts_delivered"] = delivered
        stats["delivery_failures"] = failed
        return stats

    def deliver(self, alerts: List[ClassifiedObservation]):
        """Send alerts sequentially; one failure never stops the rest of the batch."""
        delivered = failed = 0
        for i, alert in enumerate(alerts):
            try:
                ok = self.notifier.send(alert)
            except Exception as e:
                logger.error(f"Failed to send alert for {alert.display_name}: {e}", exc_info=True)
                ok = False
            if ok:
                delivered += 1
            else:
                failed += 1
            # Small delay between messages to avoid rate limiting
            if i < len(alerts) - 1 and self.send_delay_seconds > 0:
                self._sleep(self.send_delay_seconds)
        return delivered, failed

    def _fail(self, stats: Dict[str, Any], error: BaseException) -> Dict[str, Any]:
        self.consecutive_failures += 1
        stats["error"] = str(error)
        if (
            self.notifier is not None
            and not self._failure_notified
            and self.consecutive_failures >= self.failure_notify_after
        ):
            logger.warning(f"{self.consecutive_failures} consecutive failed checks, notifying")
            try:
                self.notifier.send_error_notification(error)
            except Exception as e:
                logger.error(f"Failed to send error notification: {e}", exc_info=True)
            self._failure_notified = True
        return stats

    def _log_observations(self, observations: List[RawObservation]):
        logger.info(f"Found {len(observations)} migration items")
        for item in classify_observations(observations):
            timing = f"{item.minutes_until:g} min" if item.minutes_until is not None else "unknown time"
            logger.info(f"  - {item.display_name}: {timing}")
