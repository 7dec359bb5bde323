"""Environment-based configuration for reminderbot_lite."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class ConfigManager:
    """Manages configuration overrides from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration overrides from environment variables.

        Recognizes:
        - REMINDERBOT_EVENTS_FILE -> 'events_file'
        - REMINDERBOT_SENT_STORE -> 'sent_store_path'
        - REMINDERBOT_CHECK_INTERVAL -> 'check_interval_seconds' (int)
        - REMINDERBOT_WEBHOOK_URL -> 'webhook_url'
        - REMINDERBOT_LOG_LEVEL -> 'log_level'

        Returns:
            Configuration dictionary suitable for Config.from_dict
        """
        cfg: dict[str, Any] = {}

        events_file = os.environ.get("REMINDERBOT_EVENTS_FILE")
        if events_file:
            cfg["events_file"] = events_file

        sent_store = os.environ.get("REMINDERBOT_SENT_STORE")
        if sent_store:
            cfg["sent_store_path"] = sent_store

        interval = os.environ.get("REMINDERBOT_CHECK_INTERVAL")
        if interval:
            try:
                cfg["check_interval_seconds"] = int(interval)
            except ValueError:
                logger.warning("Invalid REMINDERBOT_CHECK_INTERVAL=%r; ignoring", interval)

        webhook_url = os.environ.get("REMINDERBOT_WEBHOOK_URL")
        if webhook_url:
            cfg["webhook_url"] = webhook_url

        log_level = os.environ.get("REMINDERBOT_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level

        return cfg

    def load_overrides(self) -> dict[str, Any]:
        """Load .env file and build overrides from the environment."""
        self.load_env_file()
        return self.build_config_from_env()
