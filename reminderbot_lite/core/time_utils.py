"""Clock helpers for reminderbot_lite.

All reminder arithmetic is done on naive local date-times; multi-timezone
handling is out of scope.
"""

from __future__ import annotations

import datetime
import logging
import os

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "REMINDERBOT_TEST_TIME"


def now_local() -> datetime.datetime:
    """Return the current naive local time.

    Can be overridden for testing via the REMINDERBOT_TEST_TIME environment
    variable (ISO 8601, e.g. "2025-01-06T13:45:00"). Aware values are
    converted to local time first.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is not None:
                dt = dt.astimezone().replace(tzinfo=None)
            return dt
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.datetime.now()


def today_local() -> datetime.date:
    """Current local date, honouring the test clock override."""
    return now_local().date()
