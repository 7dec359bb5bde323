"""reminderbot_lite.config_loader

Config loader for reminderbot_lite.

- Reads YAML (PyYAML); JSON files parse as YAML too.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override and environment overrides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Typed configuration for reminderbot_lite.

    Fields:
        events_file: JSON file holding the persisted event records
        sent_store_path: JSON file recording delivered reminders
        check_interval_seconds: seconds between scheduler passes (10..600)
        lookahead_minutes: how far ahead a pass looks for upcoming occurrences
        default_lead_minutes: reminder lead time when an event sets none
        default_event_hour: hour used for events without a time of day (0..23)
        window_past_days: expansion window reach into the past
        window_future_days: expansion window reach into the future
        notification_display_seconds: how long an alert stays visible
        webhook_url: optional URL to post alerts to instead of the console
        log_level: logging level name
    """

    events_file: str = "events.json"
    sent_store_path: str = "sent_reminders.json"
    check_interval_seconds: int = 60
    lookahead_minutes: int = 30
    default_lead_minutes: int = 15
    default_event_hour: int = 9
    window_past_days: int = 31
    window_future_days: int = 183
    notification_display_seconds: int = 10
    webhook_url: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int; out-of-range values are
        clamped with a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, low: int, high: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < low:
                logger.warning("%s %d below minimum; coercing to %d", key, value, low)
                return low
            if value > high:
                logger.warning("%s %d above maximum; coercing to %d", key, value, high)
                return high
            return value

        webhook_url = data.get("webhook_url")
        webhook_url = str(webhook_url) if webhook_url else None

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            events_file=str(data.get("events_file") or cls.events_file),
            sent_store_path=str(data.get("sent_store_path") or cls.sent_store_path),
            check_interval_seconds=_coerce_int("check_interval_seconds", 60, 10, 600),
            lookahead_minutes=_coerce_int("lookahead_minutes", 30, 1, 24 * 60),
            default_lead_minutes=_coerce_int("default_lead_minutes", 15, 1, 7 * 24 * 60),
            default_event_hour=_coerce_int("default_event_hour", 9, 0, 23),
            window_past_days=_coerce_int("window_past_days", 31, 0, 3660),
            window_future_days=_coerce_int("window_future_days", 183, 1, 3660),
            notification_display_seconds=_coerce_int("notification_display_seconds", 10, 1, 3600),
            webhook_url=webhook_url,
            log_level=log_level,
        )


def _load_yaml(path: Path) -> Any:
    """Load a mapping from a YAML (or JSON) file; empty files yield an empty dict."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    return loaded


def load_config(path: str | None = None, overrides: dict[str, Any] | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./reminderbot.yaml.
        overrides: Values (typically from the environment) that win over the file.

    Returns:
        Config dataclass instance with values from file (or defaults).

    Raises:
        ValueError: If the file exists but its top level is not a mapping.
    """
    p = Path(path) if path else Path.cwd() / "reminderbot.yaml"
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if p.exists():
        loaded = _load_yaml(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        raw = loaded
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    if overrides:
        raw = {**raw, **overrides}

    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
