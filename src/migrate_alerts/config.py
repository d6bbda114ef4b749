# src/migrate_alerts/config.py
from dataclasses import dataclass, asdict, field
import logging
import os
from pathlib import Path
from typing import Optional, Dict, Any, Union

import yaml
from dotenv import load_dotenv

from migrate_alerts.alerts.pipeline import DetectionConfig
from migrate_alerts.utils.time_utils import hours_to_ms, minutes_to_ms

load_dotenv(override=False)

logger = logging.getLogger(__name__)

DISCORD_WEBHOOK_MARKER = "discord.com/api/webhooks"


class ConfigError(ValueError):
    """Configuration is unusable (e.g. missing webhook URL)."""


def _env_str(name, default=""):
    return lambda: os.getenv(name, default)

def _env_int(name, default):
    def read():
        v = os.getenv(name)
        try:
            return int(v) if v not in (None, "") else default
        except ValueError:
            logger.warning(f"Invalid integer for {name}={v!r}, using {default}")
            return default
    return read

def _env_float(name, default):
    def read():
        v = os.getenv(name)
        try:
            return float(v) if v not in (None, "") else default
        except ValueError:
            logger.warning(f"Invalid number for {name}={v!r}, using {default}")
            return default
    return read

def _env_bool(name, default=False):
    def read():
        v = os.getenv(name)
        if v is None: return default
        return str(v).strip().lower() in {"1","true","yes","y","on"}
    return read

def _env_optional(*names):
    def read():
        for name in names:
            v = os.getenv(name)
            if v:
                return v
        return None
    return read

@dataclass(frozen=True)
class Settings:
    # -------- Delivery ---------
    discord_webhook_url: str       = field(default_factory=_env_str("DISCORD_WEBHOOK_URL"))
    send_delay_seconds: float      = field(default_factory=_env_float("SEND_DELAY_SECONDS", 1.0))
    failure_notify_after: int      = field(default_factory=_env_int("FAILURE_NOTIFY_AFTER", 3))

    # -------- Schedule / thresholds -----
    check_interval_minutes: int    = field(default_factory=_env_int("CHECK_INTERVAL_MINUTES", 5))
    alert_threshold_minutes: int   = field(default_factory=_env_int("ALERT_THRESHOLD_MINUTES", 30))
    cooldown_minutes: int          = field(default_factory=_env_int("ALERT_COOLDOWN_MINUTES", 10))
    retention_hours: int           = field(default_factory=_env_int("LEDGER_RETENTION_HOURS", 24))

    # -------- Ledger -----------
    ledger_backend: str            = field(default_factory=_env_str("LEDGER_BACKEND", "json"))
    ledger_path: str               = field(default_factory=_env_str("LEDGER_PATH", "data/seen_migrations.json"))

    # -------- Scraper ----------
    page_url: str                  = field(default_factory=_env_str("MIGRATE_FUN_URL", "https://migrate.fun/projects"))
    page_timeout_ms: int           = field(default_factory=_env_int("PAGE_TIMEOUT_MS", 60000))
    selector_timeout_ms: int       = field(default_factory=_env_int("SELECTOR_TIMEOUT_MS", 30000))
    render_settle_ms: int          = field(default_factory=_env_int("RENDER_SETTLE_MS", 5000))
    browser_executable: Optional[str] = field(
        default_factory=_env_optional("BROWSER_EXECUTABLE_PATH", "PUPPETEER_EXECUTABLE_PATH"))
    headless: bool                 = field(default_factory=_env_bool("BROWSER_HEADLESS", True))

    # -------- General ----------
    log_level: str                 = field(default_factory=_env_str("LOG_LEVEL", "INFO"))

    # helper: convert to dict (useful for logging)
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def detection_config(self) -> DetectionConfig:
        return DetectionConfig(
            threshold_minutes=self.alert_threshold_minutes,
            cooldown_ms=minutes_to_ms(self.cooldown_minutes),
            retention_ms=hours_to_ms(self.retention_hours),
        )

    def validate(self) -> None:
        if not self.discord_webhook_url or DISCORD_WEBHOOK_MARKER not in self.discord_webhook_url:
            raise ConfigError(
                "Invalid or missing DISCORD_WEBHOOK_URL. "
                "Set DISCORD_WEBHOOK_URL=https://discord.com/api/webhooks/YOUR_ID/YOUR_TOKEN"
            )
        if self.check_interval_minutes < 1:
            raise ConfigError(f"check_interval_minutes must be >= 1, got {self.check_interval_minutes}")
        if self.alert_threshold_minutes < 0:
            raise ConfigError(f"alert_threshold_minutes must be >= 0, got {self.alert_threshold_minutes}")

    @staticmethod
    def from_overrides(**kwargs) -> "Settings":
        """
        Build Settings and apply runtime overrides (e.g., parsed CLI flags).
        Only keys that match fields will be overridden.
        """
        base = Settings()
        current = base.to_dict()
        current.update({k: v for k, v in kwargs.items() if k in current and v is not None})
        # rebuild frozen dataclass with updates
        return Settings(**current)  # type: ignore[arg-type]

    @staticmethod
    def from_yaml(path: Union[str, Path], **overrides) -> "Settings":
        """
        Load settings from a YAML file with a top-level `alerts:` mapping.
        Values in the file win over the environment; explicit overrides win over both.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        values = data.get("alerts", data) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"`alerts` in {path} must be a mapping")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Settings.from_overrides(**values)
