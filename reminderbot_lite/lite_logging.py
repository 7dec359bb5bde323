"""
Central logging configuration for reminderbot_lite.

Keeps the reminder modules at INFO (or DEBUG when requested) while quieting
chatty third-party loggers such as the HTTP client used by the webhook sink.
"""

import logging
import os
from typing import Optional

NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,  # request lines for every webhook post
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}

LITE_MODULES = [
    "reminderbot_lite",
    "reminderbot_lite.app",
    "reminderbot_lite.calendar",
    "reminderbot_lite.notifications",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logger levels for reminderbot_lite.

    Args:
        debug_mode: Whether to enable debug logging for reminderbot_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        REMINDERBOT_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        REMINDERBOT_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("REMINDERBOT_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("REMINDERBOT_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Handlers are installed by _init_logging; only levels are tuned here.
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    logger_config = dict(NOISY_LOGGERS)
    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for reminderbot_lite modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["reminderbot_lite", *NOISY_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
