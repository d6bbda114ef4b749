#!/usr/bin/env python3
"""
Canonical CLI to run the migrate.fun alert bot.

Features:
- Scrapes https://migrate.fun/projects on a fixed interval (headless Chromium)
- Alerts to a Discord webhook once per (token, urgency tier), with cooldown
- Persists alert history so restarts do not re-alert

Usage examples:
  # Run forever with settings from the environment / .env
  migrate-alerts

  # One check, no delivery, nothing persisted
  migrate-alerts --dry-run

  # Single real cycle with a YAML config file
  migrate-alerts --once --config alerts.yaml

  # Forget all alert history
  migrate-alerts --clear-ledger
"""
from __future__ import annotations

import argparse
import logging
import signal
import threading
import time
from typing import List, Optional

import requests

from migrate_alerts.config import ConfigError, Settings
from migrate_alerts.alerts.delivery import DiscordNotifier
from migrate_alerts.alerts.ledger import AlertLedger, MemoryLedgerStore, build_ledger_store
from migrate_alerts.alerts.orchestration import MigrationAlertOrchestrator
from migrate_alerts.alerts.pipeline import DetectionPipeline

logger = logging.getLogger(__name__)


def build_ledger(cfg: Settings, dry_run: bool = False) -> AlertLedger:
    if dry_run:
        # Seed from the real ledger so a dry run shows what would actually fire
        seed = build_ledger_store(cfg.ledger_backend, cfg.ledger_path).read()
        return AlertLedger(MemoryLedgerStore(seed))
    return AlertLedger(build_ledger_store(cfg.ledger_backend, cfg.ledger_path))


def build_fetcher(cfg: Settings):
    # Imported lazily so --clear-ledger works without a browser installed
    from migrate_alerts.sources.migrate_fun import MigrateFunFetcher

    return MigrateFunFetcher(
        url=cfg.page_url,
        timeout_ms=cfg.page_timeout_ms,
        selector_timeout_ms=cfg.selector_timeout_ms,
        settle_ms=cfg.render_settle_ms,
        executable_path=cfg.browser_executable,
        headless=cfg.headless,
    )


def build_orchestrator(cfg: Settings, dry_run: bool = False, fetcher=None) -> MigrationAlertOrchestrator:
    pipeline = DetectionPipeline(build_ledger(cfg, dry_run), cfg.detection_config())
    notifier = None if dry_run else DiscordNotifier(cfg.discord_webhook_url)
    return MigrationAlertOrchestrator(
        fetcher=fetcher or build_fetcher(cfg),
        pipeline=pipeline,
        notifier=notifier,
        threshold_minutes=cfg.alert_threshold_minutes,
        send_delay_seconds=cfg.send_delay_seconds,
        failure_notify_after=cfg.failure_notify_after,
    )


def run_check(orch: MigrationAlertOrchestrator) -> dict:
    logger.info("%s", "=" * 60)
    logger.info("Checking migrations")
    logger.info("%s", "=" * 60)
    stats = orch.run_cycle()
    logger.info(
        "Summary: ok=%s items=%s detected=%s delivered=%s failed=%s",
        stats["ok"], stats["items_found"], stats["alerts_detected"],
        stats["alerts_delivered"], stats["delivery_failures"],
    )
    return stats


def run_forever(orch: MigrationAlertOrchestrator, interval_minutes: int, stop: threading.Event) -> None:
    """
    Run cycles back to back on one thread. A cycle that overruns the interval
    delays the next one; cycles never overlap.
    """
    interval = interval_minutes * 60
    while not stop.is_set():
        started = time.monotonic()
        run_check(orch)
        remaining = interval - (time.monotonic() - started)
        if remaining > 0:
            stop.wait(remaining)


def _install_signal_handlers(stop: threading.Event) -> None:
    def _handle(signum, _frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down after current check...")
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _load_settings(args) -> Settings:
    overrides = {
        "check_interval_minutes": args.interval,
        "alert_threshold_minutes": args.threshold,
    }
    if args.config:
        return Settings.from_yaml(args.config, **overrides)
    return Settings.from_overrides(**overrides)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Discord alerts for upcoming migrate.fun token migrations")
    p.add_argument("--config", help="YAML config file (top-level `alerts:` mapping)")
    p.add_argument("--interval", type=int, help="Check interval in minutes")
    p.add_argument("--threshold", type=int, help="Alert when a migration is within N minutes")
    p.add_argument("--once", action="store_true", help="Run a single check and exit")
    p.add_argument("--dry-run", action="store_true", help="Check once, log what would alert, deliver nothing")
    p.add_argument("--no-startup", action="store_true", help="Skip the startup notification")
    p.add_argument("--clear-ledger", action="store_true", help="Clear alert history and exit")
    args = p.parse_args(argv)

    cfg = _load_settings(args)
    logging.basicConfig(
        level=getattr(logging, str(cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.clear_ledger:
        return 0 if build_ledger(cfg).clear() else 1

    if not args.dry_run:
        try:
            cfg.validate()
        except ConfigError as e:
            logger.error(str(e))
            return 1

    logger.info("%s", "=" * 60)
    logger.info("Migrate.fun Discord Alert Bot")
    logger.info("Monitoring: %s", cfg.page_url)
    logger.info("Check interval: every %s minutes | Alert threshold: %s minutes | dry_run: %s",
                cfg.check_interval_minutes, cfg.alert_threshold_minutes, args.dry_run)
    logger.info("%s", "=" * 60)

    orch = build_orchestrator(cfg, dry_run=args.dry_run)

    if args.dry_run:
        stats = run_check(orch)
        return 0 if stats["ok"] else 1

    if not args.no_startup:
        try:
            orch.notifier.send_startup_notification(cfg.check_interval_minutes, cfg.alert_threshold_minutes)
            logger.info("Startup notification sent to Discord")
        except requests.RequestException as e:
            logger.error(f"Failed to send startup notification: {e}")
            logger.error("Please check your DISCORD_WEBHOOK_URL")
            return 1

    if args.once:
        stats = run_check(orch)
        return 0 if stats["ok"] else 1

    stop = threading.Event()
    _install_signal_handlers(stop)
    logger.info(f"Scheduling checks every {cfg.check_interval_minutes} minutes. Press Ctrl+C to stop.")
    run_forever(orch, cfg.check_interval_minutes, stop)
    logger.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
