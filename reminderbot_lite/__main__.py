"""Command-line entry for reminderbot_lite."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_app


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for reminderbot_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="reminderbot_lite",
        description="ReminderBot Lite - recurring events with local reminder notifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m reminderbot_lite                         # Run the reminder loop
  python -m reminderbot_lite --events my.json --list # Print expanded occurrences
  python -m reminderbot_lite --once                  # Run one reminder pass and exit
        """,
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML config file (default: ./reminderbot.yaml)",
    )
    parser.add_argument(
        "--events",
        metavar="PATH",
        help="JSON events file (default: events.json, or REMINDERBOT_EVENTS_FILE)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single reminder pass and exit")
    mode.add_argument("--list", action="store_true", help="Print expanded occurrences and exit")

    return parser


def main() -> NoReturn:
    """Run the reminderbot_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args()
    sys.exit(run_app(args))


if __name__ == "__main__":
    main()
