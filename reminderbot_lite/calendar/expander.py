"""Recurrence expansion for ReminderBot Lite.

Turns a base event plus a bounded window into the concrete, ordered list of
occurrences. Expansion is synchronous and has no side effects, so callers can
re-run it on every render without caching.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .models import CalendarEvent
from .recurrence import first_step_near, matches_rule, period_candidates

logger = logging.getLogger(__name__)

DateLike = Union[datetime.date, datetime.datetime]

DEFAULT_WINDOW_PAST = relativedelta(months=1)
DEFAULT_WINDOW_FUTURE = relativedelta(months=6)


def _as_date(value: DateLike) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def occurrence_id(event: CalendarEvent, day: datetime.date) -> str:
    """Synthetic occurrence identity: base id plus the occurrence timestamp."""
    stamp = datetime.datetime.combine(day, event.time or datetime.time.min)
    return f"{event.id}_{stamp.strftime('%Y%m%dT%H%M%S')}"


def make_occurrence(event: CalendarEvent, day: datetime.date) -> CalendarEvent:
    """Create the occurrence of ``event`` on ``day``."""
    return event.model_copy(
        update={
            "id": occurrence_id(event, day),
            "date": day,
            "is_recurring": True,
            "original_event_id": event.id,
        }
    )


def expand(
    event: CalendarEvent,
    window_start: DateLike,
    window_end: DateLike,
) -> list[CalendarEvent]:
    """Materialize occurrences of ``event`` within ``[window_start, window_end)``.

    Non-repeating events are returned unchanged as a single-item list,
    whatever the window.

    The series is stepped from the anchor date so interval phase never
    depends on the window. Matches that precede the window still count
    towards ``end_after`` but are not emitted. Iteration stops at the first
    candidate at or past ``window_end``, past ``end_date``, or once the count
    limit is reached; the finite window is the termination guarantee for
    rules with neither limit.

    Args:
        event: Base event definition
        window_start: Inclusive start of the expansion window
        window_end: Exclusive end of the expansion window

    Returns:
        Occurrences in ascending date order
    """
    rule = event.recurrence
    if not rule.is_repeating:
        return [event]

    anchor = event.date
    start = max(_as_date(window_start), anchor)
    end = _as_date(window_end)
    if start >= end:
        return []

    occurrences: list[CalendarEvent] = []
    matched = 0
    step = 0 if rule.end_after is not None else first_step_near(anchor, rule, start)

    finished = False
    while not finished:
        candidates = period_candidates(anchor, rule, step)
        if candidates[0] >= end:
            break
        if rule.end_date is not None and candidates[0] > rule.end_date:
            break

        for candidate in candidates:
            if candidate >= end or (rule.end_date is not None and candidate > rule.end_date):
                finished = True
                break
            if candidate < anchor or not matches_rule(candidate, rule, anchor):
                continue

            matched += 1
            if candidate >= start:
                occurrences.append(make_occurrence(event, candidate))
            if rule.end_after is not None and matched >= rule.end_after:
                finished = True
                break

        step += 1

    logger.debug(
        "Expanded event %s (%s every %d) into %d occurrences for %s..%s",
        event.id,
        rule.type.value,
        rule.interval,
        len(occurrences),
        start,
        end,
    )
    return occurrences


def expand_all(
    events: Iterable[CalendarEvent],
    window_start: DateLike,
    window_end: DateLike,
    default_time: datetime.time = datetime.time(9, 0),
) -> list[CalendarEvent]:
    """Expand many base events and return every occurrence sorted by date-time.

    A base event that fails to expand is logged and contributes nothing; the
    remaining events are still expanded.
    """
    expanded: list[CalendarEvent] = []
    for event in events:
        try:
            expanded.extend(expand(event, window_start, window_end))
        except Exception:
            logger.exception("Failed to expand event %s", getattr(event, "id", "<no-id>"))
            continue

    expanded.sort(key=lambda ev: (ev.occurrence_datetime(default_time), ev.id))
    return expanded


def default_window(
    today: Optional[datetime.date] = None,
    past: relativedelta = DEFAULT_WINDOW_PAST,
    future: relativedelta = DEFAULT_WINDOW_FUTURE,
) -> tuple[datetime.date, datetime.date]:
    """Typical expansion window: one month back to six months ahead of ``today``."""
    today = today or datetime.date.today()
    return today - past, today + future
