# SPDX-License-Identifier: MIT
# src/migrate_alerts/alerts/delivery.py
"""
Discord webhook delivery for migration alerts.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from .models import ClassifiedObservation
from .tiers import Tier, classify

logger = logging.getLogger(__name__)

PROJECTS_URL = "https://migrate.fun/projects"
SOLSCAN_TOKEN_URL = "https://solscan.io/token/{address}"
FOOTER = {"text": "Migrate.fun Alert Bot"}
MAX_DETAILS_CHARS = 200


def format_time_until(minutes: float) -> str:
    """Format minutes into readable time ("12 minutes", "2 hours", "1h 30m")."""
    if minutes < 1:
        return "Less than 1 minute"
    if minutes < 60:
        rounded = round(minutes)
        return f"{rounded} minute{'' if rounded == 1 else 's'}"

    hours = int(minutes // 60)
    mins = round(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    if mins == 0:
        return f"{hours} hour{'' if hours == 1 else 's'}"
    return f"{hours}h {mins}m"


class DiscordNotifier:
    """
    Posts embed messages to a Discord webhook.

    send() never raises: a failed POST is logged and reported as False so one
    bad delivery cannot abort the rest of a batch.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        poster = self.session.post if self.session is not None else requests.post
        response = poster(
            self.webhook_url,
            json=payload,
            timeout=self.timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": "MigrateAlerts/1.0",
            },
        )
        response.raise_for_status()
        return response

    def send(self, alert: ClassifiedObservation) -> bool:
        """Send a migration alert. Returns True on a 2xx response."""
        name = alert.display_name or "Unknown Token"
        logger.info(f"Sending alert for {name} ({alert.minutes_until} min until migration)")
        try:
            self._post(build_migration_payload(alert))
        except requests.RequestException as e:
            logger.error(f"Failed to send alert for {name}: {e}")
            return False
        logger.info(f"Sent alert for {name}")
        return True

    def send_startup_notification(self, interval_minutes: int, threshold_minutes: float) -> None:
        """Raises requests.RequestException if the webhook is unreachable."""
        payload = {
            "embeds": [{
                "title": "🚀 Migration Alert Bot Started",
                "description": "Now monitoring migrate.fun for upcoming Solana token migrations.",
                "color": 0x5865F2,
                "fields": [
                    {
                        "name": "⚙️ Check Interval",
                        "value": f"Every {interval_minutes} minutes",
                        "inline": True,
                    },
                    {
                        "name": "🔔 Alert Threshold",
                        "value": f"{threshold_minutes:g} minutes before",
                        "inline": True,
                    },
                ],
                "footer": FOOTER,
                "timestamp": _now_iso(),
            }]
        }
        self._post(payload)

    def send_error_notification(self, error: BaseException) -> bool:
        """Best-effort error report; failures are logged and swallowed."""
        payload = {
            "embeds": [{
                "title": "❌ Bot Error",
                "description": f"An error occurred: {error}",
                "color": 0xFF0000,
                "footer": FOOTER,
                "timestamp": _now_iso(),
            }]
        }
        try:
            self._post(payload)
        except requests.RequestException as e:
            logger.error(f"Failed to send error notification: {e}")
            return False
        return True


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_migration_payload(alert: ClassifiedObservation) -> Dict[str, Any]:
    """Build the Discord embed payload for one alertable observation."""
    minutes = alert.minutes_until if alert.minutes_until is not None else 0.0
    tier: Tier = alert.tier or classify(minutes)

    embed: Dict[str, Any] = {
        "title": f"{tier.label} Migration: {alert.display_name or 'Unknown Token'}",
        "description": "A Solana token migration is approaching!",
        "color": tier.color,
        "fields": [
            {
                "name": "⏰ Time Until Migration",
                "value": format_time_until(minutes),
                "inline": True,
            }
        ],
        "footer": FOOTER,
        "timestamp": _now_iso(),
    }

    if alert.address:
        embed["fields"].append({
            "name": "📍 Token Address",
            "value": f"`{alert.address}`",
            "inline": False,
        })
        solscan = SOLSCAN_TOKEN_URL.format(address=alert.address)
        embed["fields"].append({
            "name": "🔗 Links",
            "value": f"[Migrate.fun]({PROJECTS_URL}) • [Solscan]({solscan})",
            "inline": False,
        })
    else:
        embed["fields"].append({
            "name": "🔗 View on Migrate.fun",
            "value": f"[Go to Projects]({PROJECTS_URL})",
            "inline": False,
        })

    # Short raw text helps when the page layout changes
    raw = alert.raw_text
    if raw and len(raw) < MAX_DETAILS_CHARS:
        embed["fields"].append({
            "name": "📝 Details",
            "value": raw,
            "inline": False,
        })

    return {"embeds": [embed]}
