"""reminderbot_lite - recurring calendar events with local reminder notifications.

Keeps top-level imports light; the runtime pieces are imported by run_app().
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream colourised output to the console.

    Honors REMINDERBOT_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("REMINDERBOT_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message  (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_app(args: Optional[object] = None) -> int:
    """Start reminderbot_lite from parsed command line arguments.

    Args:
        args: Optional namespace with ``config``, ``events``, ``once`` and ``list``

    Returns:
        Process exit code
    """
    import asyncio
    import logging
    import os

    _init_logging(os.environ.get("REMINDERBOT_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .app import ReminderApp
    from .config_loader import load_config
    from .core.config_manager import ConfigManager
    from .lite_logging import configure_lite_logging, get_logging_status

    overrides = ConfigManager().load_overrides()
    events_override = getattr(args, "events", None)
    if events_override:
        overrides["events_file"] = events_override

    try:
        cfg = load_config(getattr(args, "config", None), overrides)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 2

    logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))
    configure_lite_logging(debug_mode=cfg.log_level == "DEBUG")
    logger.debug("Logger levels: %s", get_logging_status())

    app = ReminderApp(cfg)

    if getattr(args, "list", False):
        app.reload_events(force=True)
        for line in app.describe_occurrences():
            print(line)
        return 0

    if getattr(args, "once", False):
        report = asyncio.run(app.run_once())
        logger.info(
            "Single pass finished: %d candidates, %d sent, %d failed",
            report.candidates,
            len(report.fired),
            len(report.failed),
        )
        return 1 if report.failed else 0

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    return 0
